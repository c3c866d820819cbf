"""Concurrent frontier traversal for a documentation crawl.

Workers pull URLs from one shared frontier, hand them to the page handler
and push the links found on each page back into the frontier. Pages are
emitted on a single output queue in the order workers finish them; the
consumer of :meth:`CrawlEngine.run` is the only place that sees them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterable, List, Optional, Set

from .pages import Page

LOGGER = logging.getLogger(__name__)

PageHandler = Callable[[str], Awaitable[Optional[Page]]]

_DONE = object()


@dataclass
class CrawlStats:
    fetched: int = 0
    emitted: int = 0
    failed: int = 0
    queued: int = 0

    def to_dict(self) -> dict:
        return {
            "fetched": self.fetched,
            "emitted": self.emitted,
            "failed": self.failed,
            "queued": self.queued,
        }


class CrawlEngine:
    """Bounded worker pool over a deduplicated URL frontier."""

    def __init__(
        self,
        handler: PageHandler,
        *,
        max_concurrency: int = 20,
        key: Callable[[str], str] = str.lower,
    ):
        self.handler = handler
        self.max_concurrency = max(1, max_concurrency)
        self.key = key
        self.stats = CrawlStats()
        self._frontier: "asyncio.Queue[str]" = asyncio.Queue()
        self._output: asyncio.Queue = asyncio.Queue()
        self._visited: Set[str] = set()
        self._queued: Set[str] = set()
        self._cancelled = asyncio.Event()
        self._running = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def pending(self) -> int:
        """URLs waiting in the frontier."""
        return self._frontier.qsize()

    @property
    def visited(self) -> Set[str]:
        return set(self._visited)

    def cancel(self) -> None:
        """Stop the crawl; no page is emitted once this has been observed."""
        if self._cancelled.is_set():
            return
        LOGGER.info("Crawl cancelled")
        self._cancelled.set()
        self._output.put_nowait(_DONE)

    def _claim(self, url: str) -> bool:
        # Check and insert happen without an await in between, so this is
        # atomic with respect to every other worker on the loop.
        key = self.key(url)
        if key in self._visited:
            return False
        self._visited.add(key)
        return True

    def _enqueue(self, urls: Iterable[str]) -> int:
        queued = 0
        for url in urls:
            key = self.key(url)
            if key in self._queued:
                continue
            self._queued.add(key)
            self._frontier.put_nowait(url)
            queued += 1
        self.stats.queued += queued
        return queued

    async def _worker(self, worker_id: int) -> None:
        while True:
            url = await self._frontier.get()
            try:
                if self._cancelled.is_set() or not self._claim(url):
                    continue
                self.stats.fetched += 1
                page = await self.handler(url)
                if page is None:
                    continue
                queued = self._enqueue(page.internal_urls)
                LOGGER.debug("[worker %d] %s -> %d new links", worker_id, url, queued)
                if not self._cancelled.is_set():
                    self._output.put_nowait(page)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.stats.failed += 1
                LOGGER.error("Error scraping %s: %s", url, exc)
            finally:
                self._frontier.task_done()

    async def _wait_drained(self) -> None:
        await self._frontier.join()
        self._output.put_nowait(_DONE)

    async def run(self, seeds: Iterable[str]) -> AsyncIterator[Page]:
        """Crawl from ``seeds`` and yield pages as they complete."""
        if self._running:
            raise RuntimeError("CrawlEngine.run() is already in progress")
        self._running = True

        self._enqueue(seeds)
        tasks: List[asyncio.Task] = [
            asyncio.create_task(self._worker(i)) for i in range(self.max_concurrency)
        ]
        tasks.append(asyncio.create_task(self._wait_drained()))

        try:
            while True:
                item = await self._output.get()
                if item is _DONE or self._cancelled.is_set():
                    break
                self.stats.emitted += 1
                yield item
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._running = False

            if self.stats.emitted == 0 and not self._cancelled.is_set():
                LOGGER.warning(
                    "Crawl produced no pages (%d URLs fetched); "
                    "check the base URL and scraper configuration",
                    self.stats.fetched,
                )
            else:
                LOGGER.info(
                    "Crawl finished: %d pages emitted, %d URLs fetched, %d failed",
                    self.stats.emitted,
                    self.stats.fetched,
                    self.stats.failed,
                )
