# SPDX-License-Identifier: Apache-2.0
"""Google Translate backend using deep-translator."""

import asyncio

from deep_translator import GoogleTranslator as DeepGoogleTranslator  # type: ignore[import-untyped]
from deep_translator.exceptions import (  # type: ignore[import-untyped]
    LanguageNotSupportedException,
    TooManyRequests,
    TranslationNotFound,
)

from novel_reader.translators.base import (
    BackendNotFoundError,
    EmptyResponseError,
    NetworkFailureError,
    RateLimitedError,
)


class GoogleTranslator:
    """Google Translate backend.

    This backend uses Google Translate via deep-translator library.
    No API key is required (uses free web API), which makes it a useful
    last entry in a cascade of LLM backends.

    Attributes:
        name: Backend identifier ("google").
    """

    def __init__(self, max_concurrent: int = 5) -> None:
        """Initialize GoogleTranslator.

        Args:
            max_concurrent: Maximum concurrent translation requests.
        """
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def name(self) -> str:
        """Return backend name."""
        return "google"

    async def translate(self, text: str, target_lang: str) -> str:
        """Translate a single text using Google Translate.

        Args:
            text: Text to translate.
            target_lang: Target language code ("hi", "es", "fr").

        Returns:
            Translated text.

        Raises:
            TranslationError: A classified subclass on failure.
        """
        async with self._semaphore:
            return await asyncio.to_thread(self._translate_sync, text, target_lang)

    def _translate_sync(self, text: str, target_lang: str) -> str:
        """Synchronous translation implementation."""
        try:
            translator = DeepGoogleTranslator(source="auto", target=target_lang)
            result = translator.translate(text)
        except TooManyRequests as e:
            raise RateLimitedError(f"Google Translate rate limited: {e}", backend=self.name) from e
        except LanguageNotSupportedException as e:
            raise BackendNotFoundError(
                f"Google Translate does not support '{target_lang}'", backend=self.name
            ) from e
        except TranslationNotFound as e:
            raise EmptyResponseError(f"Google Translate found no translation: {e}", backend=self.name) from e
        except Exception as e:
            raise NetworkFailureError(f"Google Translate failed: {e}", backend=self.name) from e

        if not result or not result.strip():
            raise EmptyResponseError("Google Translate returned empty text", backend=self.name)
        return str(result)
