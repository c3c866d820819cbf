"""Scraper: one documentation source and how to turn it into pages."""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from .engine import CrawlEngine
from .errors import (
    DocsError,
    FetchError,
    InvalidConfigurationError,
    PageRejected,
    ParsingError,
    SetupError,
)
from .extract import EntryExtractor, NullExtractor, extract_internal_urls
from .fetch import Fetcher, LocalFetcher, RawResponse, RemoteFetcher
from .filters import FilterContext, FilterStack
from .html import parse_html, serialize
from .options import ScraperOptions
from .pages import Page
from .rate_limit import RateLimiter
from .urls import DocsURL

LOGGER = logging.getLogger(__name__)

REDIRECT_SIGNATURE = 'http-equiv="refresh"'
NOT_FOUND_SIGNATURE = "<title>Not Found</title>"


class Scraper:
    """Crawl configuration plus the per-page processing hooks.

    Subclasses customise a documentation source by overriding
    :meth:`should_process_response`, :meth:`preprocess_response` or
    :meth:`fix_url`, and by passing their own filter stack and extractor.
    """

    index_filename = "index.json"
    db_filename = "db.json"
    meta_filename = "meta.json"

    def __init__(
        self,
        name: str,
        slug: str,
        base_url: str,
        *,
        type: str = "scraper",
        root_path: Optional[str] = None,
        initial_paths: Iterable[str] = (),
        version: Optional[str] = None,
        release: Optional[str] = None,
        links: Optional[Dict[str, str]] = None,
        fetcher: Optional[Fetcher] = None,
        source_directory: Optional[str] = None,
        filters: Optional[FilterStack] = None,
        extractor: Optional[EntryExtractor] = None,
        options: Optional[ScraperOptions] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        force_gzip: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        if not name or not slug:
            raise SetupError("A scraper needs both a name and a slug")

        self.name = name
        self.slug = f"{slug}~{version}" if version else slug
        self.type = type
        self.version = version
        self.release = release
        self.links = dict(links or {})
        self.base_url = DocsURL(base_url)
        self.root_path = root_path
        self.initial_paths = tuple(initial_paths)
        self.options = options or ScraperOptions()
        self.filters = filters if filters is not None else FilterStack()
        self.extractor = extractor or NullExtractor()
        self.logger = logger or LOGGER

        if root_path and root_path != "/":
            self.root_url = self.base_url.join(root_path)
        else:
            self.root_url = self.base_url

        if fetcher is not None:
            self.fetcher = fetcher
        elif source_directory is not None:
            self.fetcher = LocalFetcher(source_directory, self.base_url)
        else:
            limiter = (
                RateLimiter(self.options.rate_limit) if self.options.rate_limit else None
            )
            self.fetcher = RemoteFetcher(
                headers=headers,
                params=params,
                force_gzip=force_gzip,
                rate_limiter=limiter,
                timeout=self.options.timeout,
                retry_count=self.options.retry_count,
            )

        self._engine: Optional[CrawlEngine] = None

    @classmethod
    def from_config(cls, config) -> "Scraper":
        """Build a scraper from a :class:`~docsbundle.registry.ScraperConfig`."""
        return cls(**config.scraper_kwargs())

    # ------------------------------------------------------------------
    # Metadata and paths
    # ------------------------------------------------------------------

    @property
    def path(self) -> str:
        return self.slug

    @property
    def index_path(self) -> str:
        return f"{self.path}/{self.index_filename}"

    @property
    def db_path(self) -> str:
        return f"{self.path}/{self.db_filename}"

    @property
    def meta_path(self) -> str:
        return f"{self.path}/{self.meta_filename}"

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "slug": self.slug, "type": self.type}
        if self.links:
            data["links"] = dict(self.links)
        if self.version:
            data["version"] = self.version
        if self.release:
            data["release"] = self.release
        if self.options.attribution:
            data["attribution"] = self.options.attribution
        return data

    @property
    def initial_urls(self) -> List[str]:
        return [str(self.root_url)] + [self.url_for(path) for path in self.initial_paths]

    def url_for(self, path: str) -> str:
        if not path or path == "/":
            return str(self.root_url)
        return str(self.base_url.join(path))

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def should_process_response(self, response: RawResponse) -> bool:
        """Admit only successful HTML responses inside the base URL.

        Redirect stubs and "Not Found" pages are surfaced as
        :class:`PageRejected` so the caller can log them.
        """
        if not (200 <= response.status_code < 300 and response.is_html):
            return False
        try:
            if not self.base_url.contains(DocsURL(response.url)):
                return False
        except DocsError:
            return False

        body = response.text
        if not body.strip():
            raise PageRejected(response.url, "empty body")
        if REDIRECT_SIGNATURE in body:
            raise PageRejected(response.url, "client-side redirect")
        if NOT_FOUND_SIGNATURE in body:
            raise PageRejected(response.url, "not-found page")
        return True

    def preprocess_response(self, response: RawResponse) -> RawResponse:
        """Rewrite the raw body before parsing; identity by default."""
        return response

    def fix_url(self, url: str) -> str:
        if self.options.fixed_internal_urls and self.options.fix_urls is not None:
            return self.options.fix_urls(url)
        return url

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _context_for(self, url: str) -> FilterContext:
        return FilterContext(
            base_url=self.base_url,
            current_url=DocsURL(url),
            root_url=self.root_url,
            root_path=self.root_path,
            version=self.version,
            release=self.release,
            links=self.links,
            initial_paths=self.initial_paths,
            logger=self.logger,
        )

    def _follow(self, urls: Iterable[str]) -> List[str]:
        """Apply skip/only rules, redirections and URL fixes to discovered links."""
        skip_links = {link.lower() for link in self.options.skip_links}
        initial = {str(self.root_url).lower()} | {u.lower() for u in self.initial_urls}
        result: List[str] = []
        for url in urls:
            url = self.fix_url(url)
            try:
                subpath = self.base_url.subpath(DocsURL(url))
            except InvalidConfigurationError:
                continue
            if subpath is None:
                continue
            if url.lower() in skip_links or subpath.lstrip("/").lower() in skip_links:
                continue
            if not self.options.is_path_allowed(subpath, initial=url.lower() in initial):
                continue
            redirected = self.options.redirect(subpath)
            if redirected != subpath.lstrip("/"):
                url = self.url_for(redirected)
            result.append(url)
        return result

    def process_response(self, response: RawResponse) -> Page:
        """Parse, filter and extract one admitted response into a page."""
        response = self.preprocess_response(response)
        context = self._context_for(response.url)

        document: BeautifulSoup = parse_html(response.text, url=response.url)
        document = self.filters.apply(document, context)
        try:
            entries = self.extractor.extract(document, context)
        except DocsError:
            raise
        except Exception as exc:
            raise ParsingError(f"Entry extraction failed: {exc}", url=response.url) from exc
        internal_urls = self._follow(extract_internal_urls(document, context))

        return Page(
            path=context.subpath or "",
            store_path=context.slug,
            content=serialize(document),
            entries=tuple(entries),
            internal_urls=tuple(internal_urls),
        )

    def handle_response(self, response: RawResponse) -> Optional[Page]:
        try:
            if not self.should_process_response(response):
                self.logger.debug(
                    "Skipping %s (status %d, %s)",
                    response.url,
                    response.status_code,
                    response.mime_type,
                )
                return None
        except PageRejected as exc:
            self.logger.info("Skipping %s: %s", exc.url, exc.reason)
            return None

        try:
            return self.process_response(response)
        except DocsError as exc:
            self.logger.error("Failed to process %s: %s", response.url, exc)
            return None

    async def request_one(self, url: str) -> RawResponse:
        """Fetch one URL, bounded by ``options.timeout``.

        Fetchers that enforce a per-attempt deadline themselves (the remote
        fetcher, whose rate-limit wait must not count against the timeout)
        are awaited directly.
        """
        if getattr(self.fetcher, "enforces_timeout", False):
            return await self.fetcher.fetch(url)
        try:
            return await asyncio.wait_for(self.fetcher.fetch(url), self.options.timeout)
        except asyncio.TimeoutError as exc:
            raise FetchError(
                f"Timed out after {self.options.timeout}s", url=url
            ) from exc

    async def _build_page_for(self, url: str) -> Optional[Page]:
        try:
            response = await self.request_one(url)
        except FetchError as exc:
            self.logger.warning("Failed to fetch %s: %s", url, exc)
            return None
        return self.handle_response(response)

    async def build_page(self, path: str) -> Optional[Page]:
        """Fetch and process a single page by its path."""
        return await self._build_page_for(self.url_for(path))

    async def build_pages(self) -> AsyncIterator[Page]:
        """Crawl the whole source, yielding pages as they finish."""
        self._engine = CrawlEngine(
            self._build_page_for, max_concurrency=self.options.max_concurrency
        )
        try:
            async with aclosing(self._engine.run(self.initial_urls)) as pages:
                async for page in pages:
                    yield page
        finally:
            self._engine = None

    def cancel(self) -> None:
        if self._engine is not None:
            self._engine.cancel()

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    async def __aenter__(self) -> "Scraper":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
