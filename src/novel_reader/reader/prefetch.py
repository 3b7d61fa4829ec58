# SPDX-License-Identifier: Apache-2.0
"""Speculative warming of the next page's translation."""

from __future__ import annotations

import asyncio
import logging

from novel_reader.reader.resolver import PageResolver, cancelled_by_caller

logger = logging.getLogger(__name__)


class Prefetcher:
    """Fire-and-forget fetch of ``page + 1`` into the resolver's cache.

    Failures are logged and dropped: the page is simply fetched again on
    demand when the reader reaches it.
    """

    def __init__(self, resolver: PageResolver, total_pages: int) -> None:
        self._resolver = resolver
        self._total_pages = total_pages
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    def prefetch(self, current_page: int) -> None:
        """Start warming the page after ``current_page`` without waiting."""
        page = current_page + 1
        if self._closed or page > self._total_pages:
            return
        if page in self._resolver.cache or self._resolver.is_pending(page):
            return

        logger.debug("Prefetching page %d (%s)", page, self._resolver.target_lang)
        task = asyncio.get_running_loop().create_task(self._warm(page))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _warm(self, page: int) -> None:
        try:
            await self._resolver.resolve(page)
        except asyncio.CancelledError:
            if cancelled_by_caller():
                raise
            logger.debug("Prefetch of page %d was cancelled", page)
        except Exception as exc:
            logger.warning("Prefetch of page %d failed: %s", page, exc)

    @property
    def pending(self) -> int:
        """Number of prefetches still running."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for outstanding prefetches to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel(self) -> None:
        """Cancel outstanding prefetches and refuse new ones (document closed)."""
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
