"""Ordered HTML cleanup pipeline and the per-page context it runs with.

A filter is anything with ``apply(document, context) -> document``. Filters
are small and site-agnostic; a documentation source assembles the ones it
needs into a :class:`FilterStack`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from bs4 import BeautifulSoup

from .errors import DocsError, ParsingError
from .html import set_body
from .urls import DocsURL

LOGGER = logging.getLogger(__name__)

# Selectors for main content areas (documentation sites, articles, etc.)
MAIN_SELECTORS: List[str] = [
    "main",
    "[role='main']",
    "article",
    "#main-content",
    "#content",
    ".content",
    ".main-content",
    ".markdown-body",
    ".docs-content",
    ".doc-content",
    ".rst-content",
    ".md-content",
]

# Navigation chrome and widgets that never belong in a stored page
EXCLUDED_SELECTORS: List[str] = [
    "script",
    "style",
    "noscript",
    "nav",
    "footer",
    "header",
    "aside",
    ".toc",
    ".table-of-contents",
    ".breadcrumbs",
    ".sidebar",
    "[role='navigation']",
    ".headerlink",
    ".anchor",
    ".doc-anchor",
    ".copy-button",
]

_LANGUAGE_CLASS = re.compile(r"^(?:language|lang|highlight-source|highlight)-([\w+#.-]+)$")


@dataclass(frozen=True)
class FilterContext:
    """Read-only environment shared by every filter for one page."""

    base_url: DocsURL
    current_url: DocsURL
    root_url: DocsURL
    root_path: Optional[str] = None
    version: Optional[str] = None
    release: Optional[str] = None
    links: Dict[str, str] = field(default_factory=dict)
    initial_paths: Tuple[str, ...] = ()
    logger: logging.Logger = LOGGER

    @property
    def subpath(self) -> Optional[str]:
        return self.base_url.subpath(self.current_url, ignore_case=True)

    @property
    def slug(self) -> str:
        """Page path without leading ``/`` or ``.html``; ``dir/`` becomes ``dir/index``."""
        path = (self.subpath or "").lstrip("/")
        if path.endswith("/"):
            path += "index"
        return path.replace(".html", "")

    @property
    def is_root_page(self) -> bool:
        subpath = self.subpath
        if subpath is None:
            return False
        if subpath in ("", "/"):
            return True
        return bool(self.root_path) and subpath.lstrip("/") == self.root_path.lstrip("/")

    @property
    def is_initial_page(self) -> bool:
        if self.is_root_page:
            return True
        subpath = (self.subpath or "").lstrip("/")
        return subpath in {p.lstrip("/") for p in self.initial_paths}


class Filter(Protocol):
    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup: ...


class FunctionFilter:
    """Adapt a plain ``(document, context) -> document`` callable."""

    def __init__(self, func: Callable[[BeautifulSoup, FilterContext], BeautifulSoup]):
        self.func = func

    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup:
        return self.func(document, context)

    def __repr__(self) -> str:
        return f"FunctionFilter({getattr(self.func, '__name__', self.func)!r})"


def _as_filter(item) -> Filter:
    if hasattr(item, "apply"):
        return item
    if callable(item):
        return FunctionFilter(item)
    raise TypeError(f"Not a filter: {item!r}")


class FilterStack:
    """Apply filters in the order they were pushed."""

    def __init__(self, filters: Iterable = ()):
        self._filters: List[Filter] = [_as_filter(f) for f in filters]

    def push(self, item) -> "FilterStack":
        self._filters.append(_as_filter(item))
        return self

    def extend(self, items: Iterable) -> "FilterStack":
        for item in items:
            self.push(item)
        return self

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[Filter]:
        return iter(self._filters)

    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup:
        current = document
        for item in self._filters:
            try:
                current = item.apply(current, context)
            except DocsError:
                raise
            except Exception as exc:
                raise ParsingError(
                    f"Filter {item!r} failed: {exc}", url=str(context.current_url)
                ) from exc
            if current is None:
                raise ParsingError(
                    f"Filter {item!r} returned no document", url=str(context.current_url)
                )
        return current


# ---------------------------------------------------------------------------
# Built-in filters
# ---------------------------------------------------------------------------


class ContainerFilter:
    """Keep only the first node matching one of ``selectors`` as the body."""

    def __init__(self, selectors: Sequence[str] = tuple(MAIN_SELECTORS)):
        self.selectors = list(selectors)

    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup:
        for selector in self.selectors:
            node = document.select_one(selector)
            if node is not None:
                set_body(document, node)
                return document
        context.logger.debug("No content container found on %s", context.current_url)
        return document

    def __repr__(self) -> str:
        return "ContainerFilter()"


class RemoveFilter:
    """Delete every node matching one of ``selectors``."""

    def __init__(self, selectors: Sequence[str]):
        self.selectors = list(selectors)

    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup:
        if not self.selectors:
            return document
        for node in document.select(", ".join(self.selectors)):
            if not node.decomposed:
                node.decompose()
        return document

    def __repr__(self) -> str:
        return f"RemoveFilter({self.selectors!r})"


class UnwrapFilter:
    """Replace matching wrapper nodes (``details``, anchor wrappers) with their children."""

    def __init__(self, selectors: Sequence[str]):
        self.selectors = list(selectors)

    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup:
        for selector in self.selectors:
            for node in document.select(selector):
                node.unwrap()
        return document

    def __repr__(self) -> str:
        return f"UnwrapFilter({self.selectors!r})"


class RenameFilter:
    """Rename the tag of nodes matching each selector, e.g. to normalize headings."""

    def __init__(self, mapping: Dict[str, str]):
        self.mapping = dict(mapping)

    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup:
        # Select everything first so one rename cannot feed the next selector.
        matches = [(document.select(sel), tag) for sel, tag in self.mapping.items()]
        for nodes, tag in matches:
            for node in nodes:
                node.name = tag
        return document

    def __repr__(self) -> str:
        return f"RenameFilter({self.mapping!r})"


def _language_from_classes(classes: Iterable[str]) -> Optional[str]:
    for cls in classes:
        match = _LANGUAGE_CLASS.match(cls)
        if match:
            return match.group(1).lower()
    return None


class CodeLanguageFilter:
    """Tag ``pre`` blocks with ``data-language`` taken from their class names."""

    def __init__(self, default: Optional[str] = None):
        self.default = default

    def apply(self, document: BeautifulSoup, context: FilterContext) -> BeautifulSoup:
        for pre in document.select("pre"):
            if pre.get("data-language"):
                continue
            language = _language_from_classes(pre.get("class") or [])
            if language is None:
                code = pre.find("code")
                if code is not None:
                    language = _language_from_classes(code.get("class") or [])
            if language is None and pre.parent is not None:
                language = _language_from_classes(pre.parent.get("class") or [])
            language = language or self.default
            if language:
                pre["data-language"] = language
        return document

    def __repr__(self) -> str:
        return "CodeLanguageFilter()"


def default_filter_stack() -> FilterStack:
    """Generic cleanup suitable for most static documentation sites."""
    return FilterStack(
        [
            ContainerFilter(MAIN_SELECTORS),
            RemoveFilter(EXCLUDED_SELECTORS + ["details > summary"]),
            UnwrapFilter(["details"]),
            CodeLanguageFilter(),
        ]
    )
