# SPDX-License-Identifier: Apache-2.0
"""Client-side reading: page cache, prefetch and narrated playback."""

from .api_client import ApiTranslationClient
from .cache import PageTranslationCache
from .errors import PageRangeError, SpeechError, user_message
from .playback import (
    PlaybackController,
    PlaybackSession,
    ReaderListener,
    ReaderMode,
    ReaderState,
)
from .prefetch import Prefetcher
from .resolver import PageResolver
from .speech import ConsoleSpeech, SpeechCallback, SpeechEngine, SpeechHandle

__all__ = [
    "ApiTranslationClient",
    "ConsoleSpeech",
    "PageRangeError",
    "PageResolver",
    "PageTranslationCache",
    "PlaybackController",
    "PlaybackSession",
    "Prefetcher",
    "ReaderListener",
    "ReaderMode",
    "ReaderState",
    "SpeechCallback",
    "SpeechEngine",
    "SpeechError",
    "SpeechHandle",
    "user_message",
]
