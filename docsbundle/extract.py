"""Entry extraction strategies and internal-link discovery."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Protocol, Set
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup

from .entries import Entry
from .errors import InvalidConfigurationError, InvalidEntryError
from .filters import FilterContext
from .urls import DocsURL

LOGGER = logging.getLogger(__name__)

_IGNORED_SCHEMES = ("data:", "mailto:", "javascript:", "tel:")
_DECORATIONS = re.compile("[\u00b6\u00a7\u2398\u200b\u200c\u200d\ufeff]|\U0001f517|(?<!\\S)#(?!\\S)")
_WHITESPACE = re.compile(r"\s+")


class EntryExtractor(Protocol):
    def extract(self, document: BeautifulSoup, context: FilterContext) -> List[Entry]: ...


class NullExtractor:
    """Extractor for sources that only want page content, not entries."""

    def extract(self, document: BeautifulSoup, context: FilterContext) -> List[Entry]:
        return []


def clean_name(text: str) -> str:
    """Strip permalink glyphs and collapse whitespace in a heading text."""
    return _WHITESPACE.sub(" ", _DECORATIONS.sub("", text)).strip()


def _make_entry(name: str, path: str, type_: str) -> Optional[Entry]:
    try:
        return Entry(name=name, path=path, type=type_)
    except InvalidEntryError as exc:
        LOGGER.debug("Dropping entry (%s, %s, %s): %s", name, path, type_, exc)
        return None


class HeadingExtractor:
    """Build entries from a page's ``h1`` and its anchored sub-headings.

    The page entry is named after the first ``h1`` (or ``<title>``). Its type
    is ``type_name`` when given, otherwise the first path segment of the page
    title-cased, or ``"Guide"`` for top-level pages. Each sub-heading with an
    ``id`` becomes an entry at ``slug#id`` of the same type.
    """

    def __init__(
        self,
        type_name: Optional[str] = None,
        sub_selector: str = "h2[id], h3[id]",
        separator: str = "::",
    ):
        self.type_name = type_name
        self.sub_selector = sub_selector
        self.separator = separator

    def page_name(self, document: BeautifulSoup) -> str:
        heading = document.find("h1")
        if heading is not None:
            name = clean_name(heading.get_text(" "))
            if name:
                return name
        title = document.find("title")
        return clean_name(title.get_text(" ")) if title is not None else ""

    def page_type(self, context: FilterContext) -> str:
        if self.type_name:
            return self.type_name
        segments = [s for s in context.slug.split("/") if s]
        if len(segments) < 2:
            return "Guide"
        return segments[0].replace("-", " ").replace("_", " ").title()

    def extract(self, document: BeautifulSoup, context: FilterContext) -> List[Entry]:
        slug = context.slug
        name = self.page_name(document)
        type_ = self.page_type(context)

        entries: List[Entry] = []
        page_entry = _make_entry(name, slug, type_)
        if page_entry is not None:
            entries.append(page_entry)

        for node in document.select(self.sub_selector):
            anchor = node.get("id")
            if not anchor:
                continue
            heading = clean_name(node.get_text(" "))
            if self.separator in name:
                heading = f"{name}{self.separator}{heading}"
            entry = _make_entry(heading, f"{slug}#{anchor}", type_)
            if entry is not None:
                entries.append(entry)
        return entries


def _is_candidate(href: str) -> bool:
    if not href or href.startswith("#"):
        return False
    return not href.lower().startswith(_IGNORED_SCHEMES)


def extract_internal_urls(document: BeautifulSoup, context: FilterContext) -> List[str]:
    """Return same-site links of ``document`` resolved against the current URL."""
    current = str(context.current_url)
    seen: Set[str] = set()
    urls: List[str] = []
    for link in document.select("a[href]"):
        href = (link.get("href") or "").strip()
        if not _is_candidate(href):
            continue
        resolved, _fragment = urldefrag(urljoin(current, href))
        try:
            target = DocsURL(resolved)
        except InvalidConfigurationError:
            continue
        if not context.base_url.contains(target):
            continue
        if resolved not in seen:
            seen.add(resolved)
            urls.append(resolved)
    return urls
