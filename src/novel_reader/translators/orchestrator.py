# SPDX-License-Identifier: Apache-2.0
"""Fallback cascade across translation backends."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from novel_reader.translators.base import (
    AllBackendsExhaustedError,
    ConfigurationError,
    NetworkFailureError,
    TranslationError,
    TranslationResult,
    TranslatorBackend,
    ValidationError,
)

logger = logging.getLogger(__name__)


def classify_error(error: Exception, backend: str) -> TranslationError:
    """Return ``error`` as a classified ``TranslationError``.

    Backends raise classified errors themselves; anything else that escapes
    them (timeouts, socket errors, library bugs) counts as a network failure.
    """
    if isinstance(error, TranslationError):
        if error.backend is None:
            error.backend = backend
        return error
    if isinstance(error, asyncio.TimeoutError):
        message = f"{backend} timed out"
    else:
        message = f"{backend} failed: {error}"
    classified = NetworkFailureError(message, backend=backend)
    classified.__cause__ = error
    return classified


class TranslationOrchestrator:
    """Try backends in a fixed preference order until one succeeds.

    The cascade short-circuits on the first success; it is not a fan-out.
    Each backend is attempted at most once per call, and nothing about a
    backend's health is remembered between calls.
    """

    def __init__(self, backends: Sequence[TranslatorBackend]) -> None:
        """Initialize TranslationOrchestrator.

        Args:
            backends: Backends in preference order.

        Raises:
            ConfigurationError: If no backends are given or names repeat.
        """
        if not backends:
            raise ConfigurationError("At least one translation backend is required")
        names = [backend.name for backend in backends]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate backend names: {names}")
        self._backends: tuple[TranslatorBackend, ...] = tuple(backends)

    @property
    def backend_names(self) -> tuple[str, ...]:
        """Backend identifiers in cascade order."""
        return tuple(backend.name for backend in self._backends)

    async def translate(self, text: str, target_lang: str) -> TranslationResult:
        """Translate text with the first backend that succeeds.

        Args:
            text: Source text; must be non-empty after trimming.
            target_lang: Target language code.

        Returns:
            Translated text and the backend that produced it.

        Raises:
            ValidationError: If text is empty (no backend is called).
            AllBackendsExhaustedError: If every backend failed.
        """
        if not text or not text.strip():
            raise ValidationError("Text to translate must not be empty")

        attempts: list[str] = []
        last_error: TranslationError | None = None

        for backend in self._backends:
            attempts.append(backend.name)
            try:
                translated = await backend.translate(text, target_lang)
            except Exception as exc:
                last_error = classify_error(exc, backend.name)
                logger.warning(
                    "Backend %s failed (%s): %s",
                    backend.name,
                    last_error.kind.value,
                    last_error.message,
                )
                continue

            logger.info("Translated %d chars to %s using %s", len(text), target_lang, backend.name)
            return TranslationResult(text=translated, backend_used=backend.name)

        assert last_error is not None
        logger.error("All backends failed: %s", ", ".join(attempts))
        raise AllBackendsExhaustedError(last_error, attempts)

    async def close(self) -> None:
        """Close backends that hold network sessions."""
        for backend in self._backends:
            close = getattr(backend, "close", None)
            if close is not None:
                await close()
