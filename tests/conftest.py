"""Shared fixtures: an in-memory fetcher and a small local documentation mirror."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from docsbundle.fetch import RawResponse

BASE_URL = "https://docs.example.com/"

ROOT_HTML = """\
<html><head><title>Example Docs</title></head>
<body>
<nav><a href="/nav-only.html">Nav</a></nav>
<main>
  <h1>Example Docs</h1>
  <p>Start with the <a href="guide/intro.html">introduction</a>.</p>
</main>
</body></html>
"""

INTRO_HTML = """\
<html><head><title>Introduction</title></head>
<body>
<main>
  <h1>Introduction ¶</h1>
  <h2 id="install">Installing</h2>
  <p>Back to <a href="../">home</a>.</p>
</main>
</body></html>
"""


class FakeFetcher:
    """Serve canned responses keyed by URL and record every fetch."""

    def __init__(
        self,
        pages: Dict[str, str],
        *,
        delays: Optional[Dict[str, float]] = None,
        content_type: str = "text/html; charset=utf-8",
    ):
        self.pages = dict(pages)
        self.delays = dict(delays or {})
        self.content_type = content_type
        self.calls: List[str] = []
        self.closed = False

    async def fetch(self, url: str) -> RawResponse:
        self.calls.append(url)
        delay = self.delays.get(url)
        if delay:
            await asyncio.sleep(delay)
        body = self.pages.get(url)
        if body is None:
            return RawResponse(url=url, status_code=404)
        return RawResponse(
            url=url,
            status_code=200,
            headers={"Content-Type": self.content_type},
            content=body.encode("utf-8"),
        )

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher_cls():
    return FakeFetcher


@pytest.fixture
def two_page_site() -> Dict[str, str]:
    return {
        BASE_URL: ROOT_HTML,
        f"{BASE_URL}guide/intro.html": INTRO_HTML,
    }


@pytest.fixture
def mirror_dir(tmp_path):
    """A local mirror of the two-page site."""
    root = tmp_path / "mirror"
    (root / "guide").mkdir(parents=True)
    (root / "index.html").write_text(ROOT_HTML, encoding="utf-8")
    (root / "guide" / "intro.html").write_text(INTRO_HTML, encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG")
    return root
