# SPDX-License-Identifier: Apache-2.0
"""Reading-mode state machine with page-synchronized narration.

The controller owns the reader state (current page, mode, displayed text)
and the single live playback session. All mutation happens on the event
loop; every ``await`` is a point where a page turn, a mode toggle, a
speech completion or a translation result may interleave, so results are
only applied if they still belong to the current view or session.
"""

from __future__ import annotations

import asyncio
import functools
import itertools
import logging
from collections.abc import Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from novel_reader.document.pdf_source import PageContentSource
from novel_reader.reader.errors import PageRangeError, SpeechError, user_message
from novel_reader.reader.prefetch import Prefetcher
from novel_reader.reader.resolver import PageResolver, cancelled_by_caller
from novel_reader.reader.speech import SpeechEngine, SpeechHandle
from novel_reader.translators.base import Translator, TranslatorError, ValidationError

logger = logging.getLogger(__name__)


class ReaderMode(str, Enum):
    """What the reader is showing."""

    SOURCE = "source"
    TRANSLATED = "translated"
    NARRATED = "narrated"


@dataclass
class ReaderState:
    """Observable state of an open document.

    Attributes:
        total_pages: Number of pages in the document.
        target_lang: Language translations are requested in.
        current_page: 1-based page being shown.
        mode: Current reading mode.
        text: Translated text on display, None when nothing is shown.
        error: Inline error message, None when there is none.
        loading: Whether the current page's translation is being fetched.
    """

    total_pages: int
    target_lang: str
    current_page: int = 1
    mode: ReaderMode = ReaderMode.SOURCE
    text: str | None = None
    error: str | None = None
    loading: bool = False


@dataclass(eq=False)
class PlaybackSession:
    """One narrated page. At most one uncancelled session exists."""

    id: int
    page: int
    handle: SpeechHandle | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()


class ReaderListener(Protocol):
    """Receives state changes.

    Events: "loading", "render", "error", "end_of_document".
    """

    def __call__(self, event: str, state: ReaderState) -> None: ...


class PlaybackController:
    """Source / translated / narrated reading of one document."""

    def __init__(
        self,
        source: PageContentSource,
        translator: Translator,
        speech: SpeechEngine,
        target_lang: str = "hi",
        listener: ReaderListener | None = None,
        start_page: int = 1,
    ) -> None:
        """Initialize PlaybackController.

        Args:
            source: Page text source of the open document.
            translator: Orchestrator or API client used on cache misses.
            speech: Speech engine for narrated mode.
            target_lang: Initial target language code.
            listener: Optional state-change listener.
            start_page: Initial page.

        Raises:
            ValidationError: If the document is empty or start_page is out of range.
        """
        total_pages = source.page_count
        if total_pages < 1:
            raise ValidationError("Document has no pages")
        if not 1 <= start_page <= total_pages:
            raise PageRangeError(start_page, total_pages)

        self._source = source
        self._translator = translator
        self._speech = speech
        self._listener = listener
        self.state = ReaderState(
            total_pages=total_pages,
            target_lang=target_lang,
            current_page=start_page,
        )

        # One cache/prefetcher pair per target language
        self._pipelines: dict[str, tuple[PageResolver, Prefetcher]] = {}
        self._session: PlaybackSession | None = None
        self._session_ids = itertools.count(1)
        self._view = 0
        self._tasks: set[asyncio.Task[None]] = set()

    # -- accessors ---------------------------------------------------------

    @property
    def mode(self) -> ReaderMode:
        return self.state.mode

    @property
    def current_page(self) -> int:
        return self.state.current_page

    @property
    def session(self) -> PlaybackSession | None:
        """The live playback session, if narrating."""
        return self._session

    def resolver(self, target_lang: str | None = None) -> PageResolver:
        """Resolver (and its cache) for a language, default the current one."""
        return self._pipeline(target_lang or self.state.target_lang)[0]

    def prefetcher(self, target_lang: str | None = None) -> Prefetcher:
        return self._pipeline(target_lang or self.state.target_lang)[1]

    def _pipeline(self, target_lang: str) -> tuple[PageResolver, Prefetcher]:
        pipeline = self._pipelines.get(target_lang)
        if pipeline is None:
            resolver = PageResolver(self._source, self._translator, target_lang)
            pipeline = (resolver, Prefetcher(resolver, self.state.total_pages))
            self._pipelines[target_lang] = pipeline
        return pipeline

    # -- mode transitions --------------------------------------------------

    async def show_source(self) -> None:
        """Switch to the untranslated view; cached translations are kept."""
        self._cancel_playback()
        self.state.mode = ReaderMode.SOURCE
        await self._refresh()

    async def show_translated(self) -> None:
        """Show the current page's translation without audio."""
        self._cancel_playback()
        self.state.mode = ReaderMode.TRANSLATED
        await self._refresh()

    async def toggle_translation(self) -> None:
        if self.state.mode is ReaderMode.SOURCE:
            await self.show_translated()
        else:
            await self.show_source()

    async def start_narration(self) -> None:
        """Translate and read the current page aloud, then keep advancing."""
        await self._narrate(self.state.current_page)

    async def stop_narration(self, mode: ReaderMode = ReaderMode.SOURCE) -> None:
        """Stop narrating and switch to ``mode`` (source or translated)."""
        if mode is ReaderMode.NARRATED:
            raise ValueError("stop_narration needs a non-narrated target mode")
        if mode is ReaderMode.SOURCE:
            await self.show_source()
        else:
            await self.show_translated()

    async def toggle_narration(self) -> None:
        if self.state.mode is ReaderMode.NARRATED:
            await self.stop_narration()
        else:
            await self.start_narration()

    async def set_target_language(self, target_lang: str) -> None:
        """Change the translation language, keeping each language's cache."""
        if target_lang == self.state.target_lang:
            return
        narrating = self.state.mode is ReaderMode.NARRATED
        self._cancel_playback()
        self.state.target_lang = target_lang
        if narrating:
            await self._narrate(self.state.current_page)
        else:
            await self._refresh()

    # -- navigation --------------------------------------------------------

    async def next_page(self) -> None:
        await self._go_to(min(self.state.current_page + 1, self.state.total_pages))

    async def prev_page(self) -> None:
        await self._go_to(max(self.state.current_page - 1, 1))

    async def jump_to_page(self, page: int) -> None:
        """Go to ``page``.

        Raises:
            PageRangeError: If page is outside [1, total_pages]; state is unchanged.
        """
        if not 1 <= page <= self.state.total_pages:
            raise PageRangeError(page, self.state.total_pages)
        await self._go_to(page)

    async def _go_to(self, page: int) -> None:
        # Cancel before touching anything else so a late completion is stale
        self._cancel_playback()
        if self.state.mode is ReaderMode.NARRATED:
            self.state.mode = ReaderMode.TRANSLATED
        self.state.current_page = page
        await self._refresh()

    # -- content resolution ------------------------------------------------

    async def _resolve(self, page: int) -> str:
        resolver, prefetcher = self._pipeline(self.state.target_lang)
        try:
            return await resolver.resolve(page)
        finally:
            prefetcher.prefetch(page)

    async def _refresh(self) -> None:
        """Render the current page according to the (non-narrated) mode."""
        view = self._new_view()
        state = self.state
        state.error = None
        state.text = None

        if state.mode is ReaderMode.SOURCE:
            state.loading = False
            # Warm the next page so switching to the translation is instant
            self.prefetcher().prefetch(state.current_page)
            self._emit("render")
            return

        state.loading = True
        self._emit("loading")
        try:
            text = await self._resolve(state.current_page)
        except asyncio.CancelledError:
            if cancelled_by_caller():
                raise
            logger.debug("Fetch of page %d was cancelled", state.current_page)
            return
        except Exception as exc:
            if view != self._view:
                return
            self._show_error(exc)
            return

        if view != self._view:
            logger.debug("Discarding stale translation of page %d", state.current_page)
            return
        state.text = text
        state.loading = False
        self._emit("render")

    # -- narration ---------------------------------------------------------

    async def _narrate(self, page: int) -> None:
        self._cancel_playback()
        session = PlaybackSession(id=next(self._session_ids), page=page)
        self._session = session
        self._new_view()

        state = self.state
        state.mode = ReaderMode.NARRATED
        state.current_page = page
        state.error = None
        state.text = None
        state.loading = True
        self._emit("loading")

        try:
            text = await self._resolve(page)
        except asyncio.CancelledError:
            if cancelled_by_caller():
                raise
            logger.debug("Fetch of page %d was cancelled", page)
            return
        except Exception as exc:
            if session is self._session:
                self._fail_narration(exc)
            return

        if session is not self._session or session.cancelled:
            logger.debug("Session %d ended while page %d was resolving", session.id, page)
            return

        state.text = text
        state.loading = False
        self._emit("render")

        if not text.strip():
            logger.info("Nothing to read on page %d, skipping", page)
            self._spawn(self._advance(session))
            return

        try:
            handle = self._speech.speak(
                text,
                state.target_lang,
                functools.partial(self._on_speech_done, session),
            )
        except Exception as exc:
            if session is self._session:
                self._fail_narration(SpeechError(str(exc)))
            return
        if session.cancelled:
            # Completed (or failed) synchronously inside speak()
            handle.cancel()
            return
        session.handle = handle
        logger.debug("Session %d speaking page %d", session.id, page)

    def _on_speech_done(self, session: PlaybackSession, error: Exception | None) -> None:
        if (
            session is not self._session
            or session.cancelled
            or self.state.mode is not ReaderMode.NARRATED
        ):
            logger.debug("Ignoring completion of stale session %d", session.id)
            return
        if error is not None:
            self._fail_narration(SpeechError(str(error) or type(error).__name__))
            return
        self._spawn(self._advance(session))

    async def _advance(self, session: PlaybackSession) -> None:
        if session is not self._session or session.cancelled:
            return
        if session.page < self.state.total_pages:
            await self._narrate(session.page + 1)
            return

        logger.info("Reached end of document after page %d", session.page)
        self._session = None
        self._new_view()
        self.state.mode = ReaderMode.SOURCE
        self.state.text = None
        self.state.loading = False
        self._emit("end_of_document")

    def _cancel_playback(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        session.cancel()
        logger.debug("Cancelled session %d (page %d)", session.id, session.page)

    def _fail_narration(self, error: BaseException) -> None:
        self._cancel_playback()
        self._new_view()
        self.state.mode = ReaderMode.SOURCE
        self._show_error(error)

    def _show_error(self, error: BaseException) -> None:
        if isinstance(error, (TranslatorError, SpeechError)):
            logger.warning("Page %d failed: %s", self.state.current_page, error)
        else:
            logger.exception("Page %d failed unexpectedly", self.state.current_page)
        self.state.text = None
        self.state.loading = False
        self.state.error = user_message(error)
        self._emit("error")

    # -- housekeeping ------------------------------------------------------

    def _new_view(self) -> int:
        self._view += 1
        return self._view

    def _emit(self, event: str) -> None:
        if self._listener is not None:
            self._listener(event, self.state)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until no auto-advance step is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Close the document: stop audio, drop caches and pending work."""
        self._cancel_playback()
        self._new_view()
        for task in list(self._tasks):
            task.cancel()
        for resolver, prefetcher in self._pipelines.values():
            prefetcher.cancel()
            resolver.cancel()
            resolver.cache.clear()
        self._pipelines.clear()
        self.state.mode = ReaderMode.SOURCE
        self.state.text = None
        self.state.error = None
        self.state.loading = False
