"""Tests for docsbundle.engine module."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

import pytest

from docsbundle.engine import CrawlEngine, CrawlStats
from docsbundle.pages import Page

ROOT = "https://docs.example.com/"


def make_site(graph: Dict[str, List[str]]):
    """Return a handler serving ``graph`` (url -> links) and its call log."""
    calls: List[str] = []

    async def handler(url: str):
        calls.append(url)
        await asyncio.sleep(0)
        links = graph.get(url)
        if links is None:
            return None
        return Page(path=url, store_path=url, content="", internal_urls=tuple(links))

    return handler, calls


async def collect(engine: CrawlEngine, seeds) -> List[Page]:
    return [page async for page in engine.run(seeds)]


class TestCrawlStats:
    def test_to_dict(self):
        assert CrawlStats(1, 2, 3, 4).to_dict() == {
            "fetched": 1,
            "emitted": 2,
            "failed": 3,
            "queued": 4,
        }


class TestCrawlEngine:
    @pytest.mark.asyncio
    async def test_visits_every_reachable_page_once(self):
        graph = {
            ROOT: [f"{ROOT}a", f"{ROOT}b"],
            f"{ROOT}a": [ROOT, f"{ROOT}b", f"{ROOT}c"],
            f"{ROOT}b": [f"{ROOT}a", f"{ROOT}c"],
            f"{ROOT}c": [ROOT],
        }
        handler, calls = make_site(graph)
        engine = CrawlEngine(handler, max_concurrency=3)

        pages = await collect(engine, [ROOT])

        assert sorted(p.path for p in pages) == sorted(graph)
        assert sorted(calls) == sorted(graph)
        assert engine.pending == 0
        assert engine.stats.emitted == 4

    @pytest.mark.asyncio
    async def test_dedup_is_case_insensitive(self):
        graph = {f"{ROOT}Page": [f"{ROOT}page", f"{ROOT}PAGE"]}
        handler, calls = make_site(graph)
        engine = CrawlEngine(handler, max_concurrency=4)

        await collect(engine, [f"{ROOT}Page", f"{ROOT}page"])

        assert calls == [f"{ROOT}Page"]
        assert engine.visited == {f"{ROOT}page"}

    @pytest.mark.asyncio
    async def test_each_url_is_queued_once(self):
        graph = {
            ROOT: [f"{ROOT}a", f"{ROOT}b"],
            f"{ROOT}a": [f"{ROOT}c", f"{ROOT}C"],
            f"{ROOT}b": [f"{ROOT}c", f"{ROOT}a"],
            f"{ROOT}c": [],
        }
        handler, calls = make_site(graph)
        engine = CrawlEngine(handler, max_concurrency=1)

        await collect(engine, [ROOT])

        assert engine.stats.queued == 4
        assert len(calls) == 4

    @pytest.mark.asyncio
    async def test_skipped_pages_are_not_emitted(self):
        handler, calls = make_site({ROOT: [f"{ROOT}missing"]})
        engine = CrawlEngine(handler, max_concurrency=2)

        pages = await collect(engine, [ROOT])

        assert [p.path for p in pages] == [ROOT]
        assert f"{ROOT}missing" in calls
        assert engine.stats.fetched == 2

    @pytest.mark.asyncio
    async def test_respects_max_concurrency(self):
        in_flight = 0
        peak = 0
        urls = [f"{ROOT}{i}" for i in range(10)]

        async def handler(url: str):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return Page(path=url, store_path=url, content="")

        engine = CrawlEngine(handler, max_concurrency=3)
        pages = await collect(engine, urls)

        assert len(pages) == 10
        assert peak <= 3

    @pytest.mark.asyncio
    async def test_handler_error_does_not_abort_crawl(self, caplog):
        async def handler(url: str):
            if url.endswith("bad"):
                raise ValueError("broken page")
            links = (f"{ROOT}bad", f"{ROOT}good") if url == ROOT else ()
            return Page(path=url, store_path=url, content="", internal_urls=links)

        engine = CrawlEngine(handler, max_concurrency=2)
        with caplog.at_level(logging.ERROR, logger="docsbundle.engine"):
            pages = await collect(engine, [ROOT])

        assert sorted(p.path for p in pages) == [ROOT, f"{ROOT}good"]
        assert engine.stats.failed == 1
        assert "Error scraping" in caplog.text

    @pytest.mark.asyncio
    async def test_cancel_stops_emission(self):
        urls = [f"{ROOT}{i}" for i in range(20)]

        async def handler(url: str):
            await asyncio.sleep(0.01)
            return Page(path=url, store_path=url, content="")

        engine = CrawlEngine(handler, max_concurrency=2)
        received = []
        async for page in engine.run(urls):
            received.append(page)
            engine.cancel()

        assert len(received) == 1
        assert engine.cancelled
        assert engine.stats.emitted == 1

    @pytest.mark.asyncio
    async def test_cancel_before_run_emits_nothing(self, caplog):
        handler, calls = make_site({ROOT: []})
        engine = CrawlEngine(handler)
        engine.cancel()

        with caplog.at_level(logging.WARNING, logger="docsbundle.engine"):
            pages = await collect(engine, [ROOT])

        assert pages == []
        assert "no pages" not in caplog.text

    @pytest.mark.asyncio
    async def test_zero_pages_warns(self, caplog):
        handler, _calls = make_site({})
        engine = CrawlEngine(handler)

        with caplog.at_level(logging.WARNING, logger="docsbundle.engine"):
            pages = await collect(engine, [ROOT])

        assert pages == []
        assert "Crawl produced no pages" in caplog.text

    @pytest.mark.asyncio
    async def test_empty_seeds_finish(self):
        handler, calls = make_site({})
        engine = CrawlEngine(handler)
        assert await collect(engine, []) == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_run_is_not_reentrant(self):
        release = asyncio.Event()

        async def handler(url: str):
            await release.wait()
            return None

        engine = CrawlEngine(handler)
        first = engine.run([ROOT])
        task = asyncio.create_task(first.__anext__())
        await asyncio.sleep(0)

        with pytest.raises(RuntimeError):
            await engine.run([ROOT]).__anext__()

        release.set()
        with pytest.raises(StopAsyncIteration):
            await task
