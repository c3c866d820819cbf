"""Persist crawled documentation: pages, entry index, page db and metadata."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence, Union

from .entries import EntryIndex
from .errors import InvalidConfigurationError
from .pages import PageDatabase
from .scraper import Scraper

LOGGER = logging.getLogger(__name__)

MANIFEST_FILENAME = "docs.json"


class DocumentStore(Protocol):
    async def write(self, path: str, data: Union[bytes, str]) -> None: ...

    async def read(self, path: str) -> bytes: ...

    async def exists(self, path: str) -> bool: ...

    async def size(self, path: str) -> int: ...

    async def delete(self, path: str) -> None: ...

    async def list(self, directory: str) -> List[str]: ...


class FileSystemStore:
    """Document store rooted at a local directory."""

    def __init__(self, base_directory: Union[str, Path]):
        self.base_directory = Path(base_directory)
        self.base_directory.mkdir(parents=True, exist_ok=True)

    def _path(self, path: str) -> Path:
        root = self.base_directory.resolve()
        target = (root / path.lstrip("/")).resolve()
        if target != root and root not in target.parents:
            raise InvalidConfigurationError(f"Path escapes the store: {path}")
        return target

    async def write(self, path: str, data: Union[bytes, str]) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        target = self._path(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(self._path(path).read_bytes)

    async def exists(self, path: str) -> bool:
        return self._path(path).exists()

    async def size(self, path: str) -> int:
        return self._path(path).stat().st_size

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._path(path).unlink)

    async def list(self, directory: str) -> List[str]:
        target = self._path(directory)
        return sorted(child.name for child in target.iterdir())


@dataclass
class StoreResult:
    """Outcome of storing one documentation bundle."""

    slug: str
    pages: int = 0
    entries: int = 0
    types: int = 0

    @property
    def is_empty(self) -> bool:
        return self.pages == 0


def _page_file(scraper: Scraper, store_path: str) -> str:
    return f"{scraper.path}/{store_path or 'index'}.html"


class DocStorer:
    """Run a scraper's crawl and write its bundle into a document store.

    This is the single consumer of the crawl's page stream: only it touches
    the entry index and the page database.
    """

    async def store(self, scraper: Scraper, store: DocumentStore) -> StoreResult:
        index = EntryIndex()
        pages = PageDatabase()

        async with aclosing(scraper.build_pages()) as stream:
            async for page in stream:
                await store.write(_page_file(scraper, page.store_path), page.content)
                index.add_all(page.entries)
                pages.add(page.path, page.content)
                LOGGER.debug("Stored %s (%d entries)", page.path or "/", len(page.entries))

        index_data = index.to_dict()
        await store.write(scraper.index_path, json.dumps(index_data, ensure_ascii=False))
        await store.write(scraper.db_path, pages.to_json())

        meta = scraper.as_dict()
        meta["mtime"] = int(time.time())
        meta["db_size"] = await store.size(scraper.db_path)
        await store.write(scraper.meta_path, json.dumps(meta, indent=2, ensure_ascii=False))

        if pages.is_empty:
            LOGGER.warning("No pages were stored for %s", scraper.slug)
        else:
            LOGGER.info(
                "Stored %s: %d pages, %d entries", scraper.slug, len(pages), index.count
            )
        return StoreResult(
            slug=scraper.slug,
            pages=len(pages),
            entries=index.count,
            types=len(index_data["types"]),
        )


class Manifest:
    """``docs.json`` listing the metadata of every stored bundle."""

    def __init__(self, store: DocumentStore, docs: Sequence[Scraper]):
        self.store = store
        self.docs = list(docs)

    async def as_list(self) -> List[Dict[str, Any]]:
        result: List[Dict[str, Any]] = []
        for doc in self.docs:
            if not await self.store.exists(doc.meta_path):
                LOGGER.debug("No metadata for %s; leaving it out of the manifest", doc.slug)
                continue
            raw = await self.store.read(doc.meta_path)
            try:
                result.append(json.loads(raw))
            except json.JSONDecodeError as exc:
                LOGGER.warning("Unreadable metadata for %s: %s", doc.slug, exc)
        return result

    async def write(self) -> None:
        data = await self.as_list()
        await self.store.write(MANIFEST_FILENAME, json.dumps(data, indent=2, ensure_ascii=False))
