# SPDX-License-Identifier: Apache-2.0
"""Resolve a page to its translated text, coalescing concurrent requests."""

from __future__ import annotations

import asyncio
import logging

from novel_reader.document.pdf_source import PageContentSource
from novel_reader.reader.cache import PageTranslationCache
from novel_reader.translators.base import Translator

logger = logging.getLogger(__name__)


def cancelled_by_caller() -> bool:
    """Whether the running task itself is being cancelled.

    A ``CancelledError`` out of :meth:`PageResolver.resolve` also surfaces
    when the shared fetch was cancelled underneath a waiter (document
    closed); only the former must propagate.
    """
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class PageResolver:
    """Cache-first page translation for one document and target language.

    On a cache miss the page text is extracted and translated, and the
    result is written to the cache before any waiter is resumed. While a
    page is being fetched its task is kept in an in-flight map, so every
    other request for that page (on-demand or prefetch) awaits the same
    task instead of issuing another remote call.
    """

    def __init__(
        self,
        source: PageContentSource,
        translator: Translator,
        target_lang: str,
        cache: PageTranslationCache | None = None,
    ) -> None:
        self._source = source
        self._translator = translator
        self.target_lang = target_lang
        self.cache = cache if cache is not None else PageTranslationCache()
        self._in_flight: dict[int, asyncio.Task[str]] = {}

    def is_pending(self, page: int) -> bool:
        """Whether a fetch for ``page`` is currently outstanding."""
        return page in self._in_flight

    async def resolve(self, page: int) -> str:
        """Return the translated text of ``page``.

        Image-only pages resolve to an empty string without a remote call.

        Raises:
            TranslatorError: If extraction or translation fails.
        """
        cached = self.cache.get(page)
        if cached is not None:
            logger.debug("Cache hit for page %d (%s)", page, self.target_lang)
            return cached

        # Check-then-insert with no await in between
        task = self._in_flight.get(page)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch(page))
            self._in_flight[page] = task
            task.add_done_callback(lambda done, p=page: self._forget(p, done))
        else:
            logger.debug("Joining in-flight fetch for page %d", page)

        # A cancelled waiter must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch(self, page: int) -> str:
        text = await self._source.extract_page_text(page)
        if not text.strip():
            logger.info("Page %d has no extractable text", page)
            translated = ""
        else:
            result = await self._translator.translate(text, self.target_lang)
            translated = result.text
        self.cache.put(page, translated)
        return translated

    def _forget(self, page: int, task: asyncio.Task[str]) -> None:
        if self._in_flight.get(page) is task:
            del self._in_flight[page]
        # Mark the exception retrieved; waiters that were cancelled never see it
        if not task.cancelled():
            task.exception()

    def cancel(self) -> None:
        """Cancel outstanding fetches (document closed)."""
        for task in list(self._in_flight.values()):
            task.cancel()
        self._in_flight.clear()
