# SPDX-License-Identifier: Apache-2.0
"""Tests for the page cache, resolver and prefetcher."""

from __future__ import annotations

import asyncio
import logging

import pytest

from novel_reader.reader import PageResolver, PageTranslationCache, Prefetcher
from novel_reader.translators import (
    AllBackendsExhaustedError,
    NetworkFailureError,
    RateLimitedError,
    TranslationOrchestrator,
    TranslationResult,
)


class FakeSource:
    """In-memory document."""

    def __init__(self, pages: dict[int, str]) -> None:
        self._pages = pages
        self.extracted: list[int] = []

    @property
    def page_count(self) -> int:
        return len(self._pages)

    async def extract_page_text(self, page: int) -> str:
        self.extracted.append(page)
        return self._pages[page]


class FakeTranslator:
    """Translator whose calls can be held open with a gate."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.error = error
        self.gate: asyncio.Event | None = None

    async def translate(self, text: str, target_lang: str) -> TranslationResult:
        self.calls.append((text, target_lang))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return TranslationResult(text=f"{target_lang}:{text}", backend_used="fake")

    async def close(self) -> None:
        pass


class FakeBackend:
    def __init__(self, name: str, result: str | None = None, error: Exception | None = None):
        self._name = name
        self.result = result
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def translate(self, text: str, target_lang: str) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        assert self.result is not None
        return self.result


PAGES = {1: "One.", 2: "Two.", 3: "Three."}


class TestPageTranslationCache:
    def test_get_absent_is_idempotent(self) -> None:
        cache = PageTranslationCache()
        assert cache.get(4) is None
        assert cache.get(4) is None
        assert 4 not in cache
        assert len(cache) == 0

    def test_put_get(self) -> None:
        cache = PageTranslationCache()
        cache.put(2, "dos")
        cache.put(1, "uno")
        assert cache.get(2) == "dos"
        assert cache.get(2) == "dos"
        assert cache.pages() == [1, 2]

    def test_empty_text_is_cached(self) -> None:
        """An image-only page caches as empty text, not as a miss."""
        cache = PageTranslationCache()
        cache.put(1, "")
        assert cache.get(1) == ""
        assert 1 in cache

    def test_clear(self) -> None:
        cache = PageTranslationCache()
        cache.put(1, "uno")
        cache.clear()
        assert cache.get(1) is None


class TestPageResolver:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self) -> None:
        source = FakeSource(PAGES)
        translator = FakeTranslator()
        resolver = PageResolver(source, translator, "hi")

        assert await resolver.resolve(2) == "hi:Two."
        assert resolver.cache.get(2) == "hi:Two."
        assert await resolver.resolve(2) == "hi:Two."

        assert translator.calls == [("Two.", "hi")]
        assert source.extracted == [2]

    @pytest.mark.asyncio
    async def test_concurrent_requests_coalesce(self) -> None:
        """Two overlapping requests for the same page make one remote call."""
        translator = FakeTranslator()
        translator.gate = asyncio.Event()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")

        first = asyncio.create_task(resolver.resolve(1))
        second = asyncio.create_task(resolver.resolve(1))
        await asyncio.sleep(0)
        assert resolver.is_pending(1)

        translator.gate.set()
        results = await asyncio.gather(first, second)

        assert results == ["hi:One.", "hi:One."]
        assert len(translator.calls) == 1
        assert not resolver.is_pending(1)

    @pytest.mark.asyncio
    async def test_image_only_page_skips_translation(self) -> None:
        translator = FakeTranslator()
        resolver = PageResolver(FakeSource({1: "  \n"}), translator, "hi")

        assert await resolver.resolve(1) == ""
        assert resolver.cache.get(1) == ""
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_failure_not_cached(self) -> None:
        """A failed fetch leaves no cache entry and the next request retries."""
        translator = FakeTranslator(error=NetworkFailureError("down"))
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")

        with pytest.raises(NetworkFailureError):
            await resolver.resolve(1)
        assert 1 not in resolver.cache
        assert not resolver.is_pending(1)

        translator.error = None
        assert await resolver.resolve(1) == "hi:One."
        assert len(translator.calls) == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_keeps_fetch(self) -> None:
        """Cancelling one waiter does not cancel the shared fetch."""
        translator = FakeTranslator()
        translator.gate = asyncio.Event()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")

        waiter = asyncio.create_task(resolver.resolve(1))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert resolver.is_pending(1)
        translator.gate.set()
        assert await resolver.resolve(1) == "hi:One."
        assert len(translator.calls) == 1

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        translator = FakeTranslator()
        translator.gate = asyncio.Event()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")

        waiter = asyncio.create_task(resolver.resolve(1))
        await asyncio.sleep(0)
        resolver.cancel()

        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert not resolver.is_pending(1)
        assert 1 not in resolver.cache


class TestPrefetcher:
    @pytest.mark.asyncio
    async def test_warms_next_page(self) -> None:
        translator = FakeTranslator()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        prefetcher.prefetch(1)
        assert prefetcher.pending == 1
        await prefetcher.drain()

        assert resolver.cache.get(2) == "hi:Two."
        assert prefetcher.pending == 0

    @pytest.mark.asyncio
    async def test_noop_on_last_page(self) -> None:
        translator = FakeTranslator()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        prefetcher.prefetch(3)
        await prefetcher.drain()

        assert prefetcher.pending == 0
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_noop_when_cached(self) -> None:
        translator = FakeTranslator()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")
        resolver.cache.put(2, "cached")
        prefetcher = Prefetcher(resolver, total_pages=3)

        prefetcher.prefetch(1)

        assert prefetcher.pending == 0
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_joins_in_flight_fetch(self) -> None:
        """Prefetch of a page already being fetched adds no remote call."""
        translator = FakeTranslator()
        translator.gate = asyncio.Event()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        on_demand = asyncio.create_task(resolver.resolve(2))
        await asyncio.sleep(0)
        prefetcher.prefetch(1)
        translator.gate.set()
        await on_demand
        await prefetcher.drain()

        assert len(translator.calls) == 1

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        translator = FakeTranslator(error=NetworkFailureError("down"))
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        with caplog.at_level(logging.WARNING):
            prefetcher.prefetch(1)
            await prefetcher.drain()

        assert 2 not in resolver.cache
        assert "Prefetch of page 2 failed" in caplog.text

    @pytest.mark.asyncio
    async def test_cancelled_fetch_ends_quietly(self) -> None:
        """A prefetch whose shared fetch is cancelled by the resolver just stops."""
        translator = FakeTranslator()
        translator.gate = asyncio.Event()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        prefetcher.prefetch(1)
        await asyncio.sleep(0)
        resolver.cancel()
        await prefetcher.drain()

        assert prefetcher.pending == 0
        assert 2 not in resolver.cache

    @pytest.mark.asyncio
    async def test_no_prefetch_after_cancel(self) -> None:
        translator = FakeTranslator()
        resolver = PageResolver(FakeSource(PAGES), translator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        prefetcher.cancel()
        prefetcher.prefetch(1)

        assert prefetcher.pending == 0
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_fallback_then_prefetch(self) -> None:
        """Page 1 falls back to b2, then page 2 is prefetched via one cascade."""
        b1 = FakeBackend("b1", error=RateLimitedError("429"))
        b2 = FakeBackend("b2", result="X")
        orchestrator = TranslationOrchestrator([b1, b2])
        resolver = PageResolver(FakeSource(PAGES), orchestrator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        assert await resolver.resolve(1) == "X"
        assert resolver.cache.pages() == [1]
        assert (b1.calls, b2.calls) == (1, 1)

        prefetcher.prefetch(1)
        await prefetcher.drain()

        assert resolver.cache.pages() == [1, 2]
        assert (b1.calls, b2.calls) == (2, 2)

    @pytest.mark.asyncio
    async def test_exhausted_prefetch_leaves_no_entry(self) -> None:
        b1 = FakeBackend("b1", error=RateLimitedError("429"))
        orchestrator = TranslationOrchestrator([b1])
        resolver = PageResolver(FakeSource(PAGES), orchestrator, "hi")
        prefetcher = Prefetcher(resolver, total_pages=3)

        prefetcher.prefetch(1)
        await prefetcher.drain()

        assert 2 not in resolver.cache
        with pytest.raises(AllBackendsExhaustedError):
            await resolver.resolve(2)
