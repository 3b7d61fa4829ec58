# SPDX-License-Identifier: Apache-2.0
"""Client for the HTTP translate API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from novel_reader.translators.base import (
    ERROR_CLASSES,
    EmptyResponseError,
    ErrorKind,
    NetworkFailureError,
    RateLimitedError,
    TranslationError,
    TranslationResult,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _retry_after(headers: Any) -> float | None:
    """Delay from a Retry-After header; the HTTP-date form is ignored."""
    value = headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        logger.debug("Ignoring non-numeric Retry-After: %s", value)
        return None


class ApiTranslationClient:
    """Translator that delegates to a remote ``/api/translate`` server.

    Failures are mapped back onto the same classified errors the in-process
    orchestrator raises, so the reader handles both identically.
    """

    def __init__(self, base_url: str, timeout: float = 120.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        return self._base_url

    async def __aenter__(self) -> ApiTranslationClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def translate(self, text: str, target_lang: str) -> TranslationResult:
        """Translate text through the server.

        Raises:
            ValidationError: If text is empty or the server rejected it.
            TranslationError: A classified subclass on failure.
        """
        if not text or not text.strip():
            raise ValidationError("Text to translate must not be empty")

        session = await self._ensure_session()
        try:
            async with session.post(
                f"{self._base_url}/api/translate",
                json={"text": text, "targetLang": target_lang},
            ) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise NetworkFailureError(
                        f"Server returned malformed JSON (status {response.status})",
                        backend=self.name,
                    ) from e
                return self._parse(response.status, response.headers, data)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkFailureError(
                f"Translation server unreachable: {e or type(e).__name__}",
                backend=self.name,
            ) from e

    def _parse(self, status: int, headers: Any, data: Any) -> TranslationResult:
        if not isinstance(data, dict):
            raise NetworkFailureError(f"Unexpected response (status {status})", backend=self.name)

        if status == 200:
            translated = data.get("translatedText")
            if not isinstance(translated, str) or not translated.strip():
                raise EmptyResponseError("Server returned no translation", backend=self.name)
            return TranslationResult(
                text=translated, backend_used=str(data.get("backend") or self.name)
            )

        details = str(data.get("details") or data.get("error") or f"HTTP {status}")
        if status == 400:
            raise ValidationError(details)
        if status == 429:
            raise RateLimitedError(details, backend=self.name, retry_after=_retry_after(headers))

        error_class: type[TranslationError] = NetworkFailureError
        try:
            error_class = ERROR_CLASSES.get(ErrorKind(data.get("kind")), NetworkFailureError)
        except ValueError:
            pass
        logger.debug("Server failure (status %d): %s", status, details)
        raise error_class(details, backend=self.name)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
