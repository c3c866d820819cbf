"""Fetch strategies: read pages from a local mirror or over HTTP."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import random
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable
from urllib.parse import unquote

import httpx

from .errors import FetchError, SetupError
from .rate_limit import RateLimiter
from .urls import DocsURL

LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS: Dict[str, str] = {"User-Agent": "docsbundle"}
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_RETRY_COUNT = 3
DEFAULT_BACKOFF_BASE_S = 1.0
DEFAULT_JITTER_FACTOR = 0.5


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RawResponse:
    """Status, headers and raw body of one fetched URL."""

    url: str
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    @property
    def is_success(self) -> bool:
        return self.status_code == 200

    @property
    def is_error(self) -> bool:
        return self.status_code == 0 or (
            400 <= self.status_code <= 599 and self.status_code not in (403, 404)
        )

    @property
    def is_empty(self) -> bool:
        return not self.content

    @property
    def mime_type(self) -> str:
        return self.header("Content-Type") or "text/plain"

    @property
    def is_html(self) -> bool:
        return "html" in self.mime_type.lower()

    @property
    def content_length(self) -> int:
        try:
            return int(self.header("Content-Length") or 0)
        except ValueError:
            return 0

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def with_text(self, text: str) -> "RawResponse":
        """Return a copy of this response with a replaced body."""
        return replace(self, content=text.encode("utf-8"))


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


@runtime_checkable
class Fetcher(Protocol):
    """Retrieve raw content for a URL."""

    async def fetch(self, url: str) -> RawResponse: ...

    async def aclose(self) -> None: ...


class LocalFetcher:
    """Serve URLs under ``base_url`` from files in a local mirror directory.

    Missing files come back as a 404 response instead of raising, so the
    crawl skips them the same way it skips a remote 404.
    """

    def __init__(self, directory: "str | Path", base_url: "str | DocsURL"):
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise SetupError(f"Local source directory not found: {self.directory}")
        self.base_url = DocsURL(base_url)

    def _resolve(self, url: str) -> Optional[Path]:
        relative = self.base_url.subpath(DocsURL(url))
        if relative is None:
            return None
        root = self.directory.resolve()
        target = (root / unquote(relative).lstrip("/")).resolve()
        if target != root and root not in target.parents:
            return None
        if target.is_dir():
            target = target / "index.html"
        return target

    async def fetch(self, url: str) -> RawResponse:
        path = self._resolve(url)
        if path is None:
            LOGGER.warning("URL %s is outside %s", url, self.directory)
            return RawResponse(url=url, status_code=404)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            LOGGER.warning("Failed to read %s: %s", path, exc)
            return RawResponse(url=url, status_code=404)

        if path.suffix.lower() in (".html", ".htm"):
            content_type = "text/html"
        else:
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return RawResponse(
            url=url,
            status_code=200,
            headers={"Content-Type": content_type, "Content-Length": str(len(data))},
            content=data,
        )

    async def aclose(self) -> None:
        return None


def _backoff_delay_s(
    attempt: int,
    base_s: float = DEFAULT_BACKOFF_BASE_S,
    jitter_factor: float = DEFAULT_JITTER_FACTOR,
) -> float:
    """Exponential backoff (base * 2**attempt) with +/- jitter."""
    ideal = base_s * (2 ** attempt)
    return ideal * random.uniform(1.0 - jitter_factor, 1.0 + jitter_factor)


def _should_retry(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code <= 599


class RemoteFetcher:
    """HTTP GET fetcher gated by an optional shared :class:`RateLimiter`.

    ``timeout`` bounds each HTTP attempt, never the wait for admission, so a
    saturated rate limiter only delays a fetch.
    """

    # fetch() applies its own per-attempt deadline.
    enforces_timeout = True

    def __init__(
        self,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        force_gzip: bool = False,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        retry_count: int = DEFAULT_RETRY_COUNT,
        backoff_base: float = DEFAULT_BACKOFF_BASE_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        request_headers = dict(DEFAULT_HEADERS)
        request_headers.update(headers or {})
        if force_gzip:
            request_headers["Accept-Encoding"] = "gzip"

        self.headers = request_headers
        self.params = dict(params or {})
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.retry_count = retry_count
        self.backoff_base = backoff_base
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=request_headers,
            timeout=timeout,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "RemoteFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _get_once(self, url: str) -> RawResponse:
        if self.rate_limiter is not None:
            await self.rate_limiter.admit()
        try:
            response = await asyncio.wait_for(
                self._client.get(url, params=self.params or None, headers=self.headers),
                self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise httpx.TimeoutException(f"Timed out after {self.timeout}s") from exc
        return RawResponse(
            url=str(response.url),
            status_code=response.status_code,
            headers=dict(response.headers),
            content=response.content,
        )

    async def fetch(self, url: str) -> RawResponse:
        attempt = 0
        while True:
            try:
                response = await self._get_once(url)
            except httpx.TransportError as exc:
                if attempt >= self.retry_count:
                    raise FetchError(f"Request failed: {exc}", url=url) from exc
                LOGGER.debug("Transport error for %s (attempt %d): %s", url, attempt + 1, exc)
            else:
                if not _should_retry(response.status_code) or attempt >= self.retry_count:
                    return response
                LOGGER.debug(
                    "Retrying %s after status %d (attempt %d)",
                    url,
                    response.status_code,
                    attempt + 1,
                )

            await asyncio.sleep(_backoff_delay_s(attempt, base_s=self.backoff_base))
            attempt += 1

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
