"""Offline documentation bundles built by crawling a documentation site.

This package crawls a published documentation site (or a local mirror of
one), cleans each page through an ordered filter pipeline, extracts named
documentation entries and stores the result as a bundle:

- ``<slug>/<page>.html`` for every processed page
- ``<slug>/index.json`` with the sorted entries and per-type counts
- ``<slug>/db.json`` mapping page paths to content
- ``<slug>/meta.json`` with the bundle metadata

Example usage:

    from docsbundle import Scraper, HeadingExtractor, build_docs, default_filter_stack

    scraper = Scraper(
        "Example",
        "example",
        "https://docs.example.com/",
        filters=default_filter_stack(),
        extractor=HeadingExtractor(),
    )
    result = build_docs(scraper, "./output")
    print(result.pages, result.entries)

    # Crawl a local mirror instead of the live site
    scraper = Scraper(
        "Example",
        "example",
        "https://docs.example.com/",
        source_directory="./mirror",
    )
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Union

from .engine import CrawlEngine, CrawlStats
from .entries import Entry, EntryIndex, EntryType, compare_names
from .errors import (
    DocsError,
    FetchError,
    InvalidConfigurationError,
    InvalidEntryError,
    PageRejected,
    ParsingError,
    SetupError,
)
from .extract import EntryExtractor, HeadingExtractor, NullExtractor, extract_internal_urls
from .fetch import Fetcher, LocalFetcher, RawResponse, RemoteFetcher
from .filters import (
    CodeLanguageFilter,
    ContainerFilter,
    Filter,
    FilterContext,
    FilterStack,
    RemoveFilter,
    RenameFilter,
    UnwrapFilter,
    default_filter_stack,
)
from .options import ScraperOptions
from .pages import Page, PageDatabase
from .rate_limit import RateLimiter
from .registry import PackageRegistry, ScraperConfig, StaticRegistry
from .scraper import Scraper
from .store import DocStorer, DocumentStore, FileSystemStore, Manifest, StoreResult
from .urls import DocsURL

__all__ = [
    # Entries
    "Entry",
    "EntryIndex",
    "EntryType",
    "compare_names",
    # Errors
    "DocsError",
    "FetchError",
    "InvalidConfigurationError",
    "InvalidEntryError",
    "PageRejected",
    "ParsingError",
    "SetupError",
    # Fetching
    "Fetcher",
    "LocalFetcher",
    "RemoteFetcher",
    "RawResponse",
    "RateLimiter",
    # Filters and extraction
    "Filter",
    "FilterContext",
    "FilterStack",
    "ContainerFilter",
    "RemoveFilter",
    "UnwrapFilter",
    "RenameFilter",
    "CodeLanguageFilter",
    "default_filter_stack",
    "EntryExtractor",
    "NullExtractor",
    "HeadingExtractor",
    "extract_internal_urls",
    # Crawling
    "CrawlEngine",
    "CrawlStats",
    "DocsURL",
    "Page",
    "PageDatabase",
    "Scraper",
    "ScraperOptions",
    # Registry and storage
    "PackageRegistry",
    "ScraperConfig",
    "StaticRegistry",
    "DocumentStore",
    "FileSystemStore",
    "DocStorer",
    "Manifest",
    "StoreResult",
    # Entry points
    "build_docs",
    "build_docs_async",
]


async def build_docs_async(
    scraper: Scraper,
    output: Union[str, Path],
    *,
    write_manifest: bool = True,
) -> StoreResult:
    """
    Crawl ``scraper``'s source and store the bundle under ``output``.

    Args:
        scraper: The configured documentation source.
        output: Directory for the bundle (created if missing).
        write_manifest: Also write ``docs.json`` listing the bundle.

    Returns:
        StoreResult with page, entry and type counts.

    Raises:
        OSError: If the output cannot be written.
    """
    store = FileSystemStore(output)
    async with scraper:
        result = await DocStorer().store(scraper, store)
    if write_manifest:
        await Manifest(store, [scraper]).write()
    return result


def build_docs(
    scraper: Scraper,
    output: Union[str, Path],
    *,
    write_manifest: bool = True,
) -> StoreResult:
    """Synchronous wrapper for build_docs_async."""
    return asyncio.run(build_docs_async(scraper, output, write_manifest=write_manifest))
