# SPDX-License-Identifier: Apache-2.0
"""Speech capability used by narrated reading."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from typing import Protocol, TextIO, runtime_checkable

logger = logging.getLogger(__name__)

# Called once with None on normal completion or the error that stopped speech
SpeechCallback = Callable[[Exception | None], None]


@runtime_checkable
class SpeechHandle(Protocol):
    """Handle to an utterance in progress."""

    def cancel(self) -> None:
        """Stop speaking. The completion callback must not fire afterwards."""
        ...


@runtime_checkable
class SpeechEngine(Protocol):
    """Text-to-speech capability."""

    def speak(self, text: str, language: str, on_complete: SpeechCallback) -> SpeechHandle:
        """Start speaking ``text`` and return immediately.

        Args:
            text: Text to speak.
            language: Language code used to pick a voice.
            on_complete: Completion callback, called on the event loop.

        Returns:
            Handle that can cancel the utterance.
        """
        ...


class _TimerHandle:
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class ConsoleSpeech:
    """Prints the text and "finishes" after a reading-speed delay.

    Useful for terminals without audio and for watching narration logic.
    """

    def __init__(
        self,
        words_per_minute: float = 180.0,
        stream: TextIO | None = None,
        min_seconds: float = 0.5,
    ) -> None:
        if words_per_minute <= 0:
            raise ValueError("words_per_minute must be positive")
        self._words_per_minute = words_per_minute
        self._stream = stream or sys.stdout
        self._min_seconds = min_seconds

    def duration(self, text: str) -> float:
        """Seconds it takes to read ``text`` aloud."""
        words = len(text.split())
        return max(self._min_seconds, words * 60.0 / self._words_per_minute)

    def speak(self, text: str, language: str, on_complete: SpeechCallback) -> SpeechHandle:
        print(f"[{language}] {text}", file=self._stream, flush=True)
        delay = self.duration(text)
        logger.debug("Speaking %d chars for %.1fs", len(text), delay)
        loop = asyncio.get_running_loop()
        return _TimerHandle(loop.call_later(delay, on_complete, None))
