# SPDX-License-Identifier: Apache-2.0
"""Gemini translation backend over the Generative Language REST API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, NoReturn

import aiohttp

from novel_reader.translators.base import (
    BackendNotFoundError,
    ConfigurationError,
    EmptyResponseError,
    NetworkFailureError,
    RateLimitedError,
)
from novel_reader.translators.prompts import build_prompt

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

# Models tried in this order when no explicit cascade is configured
PREFERRED_MODELS = (
    "gemini-1.5-flash",
    "gemini-1.5-pro",
    "gemini-pro",
    "gemini-1.0-pro",
)

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"


def _parse_seconds(value: Any) -> float | None:
    """Parse "37s" / "1.5s" / "12" into seconds."""
    if value is None:
        return None
    try:
        return float(str(value).strip().rstrip("s"))
    except ValueError:
        return None


def _error_payload(data: Any) -> dict[str, Any]:
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return data["error"]
    return {}


def _retry_delay(error: dict[str, Any], headers: Any) -> float | None:
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("@type") == RETRY_INFO_TYPE:
            delay = _parse_seconds(detail.get("retryDelay"))
            if delay is not None:
                return delay
    return _parse_seconds(headers.get("Retry-After"))


class GeminiTranslator:
    """Gemini translation backend.

    One instance per model; the model name is the backend identifier so a
    cascade can fall back from one Gemini model to another.

    Attributes:
        name: Backend identifier (the model name, e.g. "gemini-1.5-flash").
    """

    def __init__(
        self,
        api_key: str,
        model: str = PREFERRED_MODELS[0],
        api_base: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize GeminiTranslator.

        Args:
            api_key: Gemini API key.
            model: Model name, with or without the "models/" prefix.
            api_base: API base URL (default: public v1beta endpoint).
            timeout: Total request timeout in seconds.

        Raises:
            ConfigurationError: If API key is not provided.
        """
        if not api_key:
            raise ConfigurationError("Gemini API key is required")

        self._api_key = api_key
        self._model = model.removeprefix("models/")
        self._api_base = (api_base or DEFAULT_API_BASE).rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        """Return backend name."""
        return self._model

    async def __aenter__(self) -> GeminiTranslator:
        """Enter async context manager."""
        await self._ensure_session()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists.

        Returns:
            Active aiohttp session.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def translate(self, text: str, target_lang: str) -> str:
        """Translate a single text using Gemini generateContent.

        Args:
            text: Text to translate.
            target_lang: Target language code ("hi", "es", "fr").

        Returns:
            Translated text (first candidate).

        Raises:
            RateLimitedError: On HTTP 429.
            BackendNotFoundError: On unknown model or model access denied.
            EmptyResponseError: When no candidate text is returned.
            NetworkFailureError: On any other failure.
        """
        session = await self._ensure_session()
        url = f"{self._api_base}/models/{self._model}:generateContent"
        payload = {"contents": [{"parts": [{"text": build_prompt(text, target_lang)}]}]}

        logger.debug("Requesting %s translation to %s", self._model, target_lang)
        try:
            async with session.post(
                url,
                params={"key": self._api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
            ) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise NetworkFailureError(
                        f"Gemini returned malformed JSON (status {response.status})",
                        backend=self.name,
                    ) from e

                if response.status == 200:
                    return self._extract_text(data)
                self._raise_for_status(response.status, data, response.headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkFailureError(
                f"Gemini request failed: {e or type(e).__name__}", backend=self.name
            ) from e

    def _extract_text(self, data: Any) -> str:
        """Pull the best candidate's text out of a generateContent response."""
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            reason = ""
            if isinstance(data, dict):
                reason = (data.get("promptFeedback") or {}).get("blockReason", "")
            raise EmptyResponseError(
                f"Gemini returned no candidates {reason}".rstrip(), backend=self.name
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise EmptyResponseError("Gemini candidate has no text", backend=self.name)
        return text

    def _raise_for_status(self, status: int, data: Any, headers: Any) -> NoReturn:
        """Map an error response onto the classified error types."""
        error = _error_payload(data)
        message = error.get("message") or f"HTTP {status}"
        error_status = str(error.get("status", ""))

        if status == 429 or error_status == "RESOURCE_EXHAUSTED":
            raise RateLimitedError(
                f"Gemini rate limit exceeded: {message}",
                backend=self.name,
                retry_after=_retry_delay(error, headers),
            )
        if status in (401, 403, 404) or "not supported" in message.lower():
            raise BackendNotFoundError(
                f"Model '{self._model}' is not available: {message}",
                backend=self.name,
            )
        raise NetworkFailureError(
            f"Gemini API error (status {status}): {message}", backend=self.name
        )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None


async def discover_models(
    api_key: str,
    preferred: Sequence[str] = PREFERRED_MODELS,
    api_base: str | None = None,
    timeout: float = 30.0,
) -> list[str]:
    """List the preferred models this API key can use for generateContent.

    Args:
        api_key: Gemini API key.
        preferred: Model names in preference order.
        api_base: API base URL (default: public v1beta endpoint).
        timeout: Total request timeout in seconds.

    Returns:
        Available preferred model names, in preference order. Empty when the
        listing fails or nothing matches.
    """
    url = f"{(api_base or DEFAULT_API_BASE).rstrip('/')}/models"
    try:
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout)
        ) as session:
            async with session.get(url, params={"key": api_key}) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning("Model discovery failed: %s", e)
        return []
    if not isinstance(data, dict):
        logger.warning("Model discovery returned unexpected payload: %r", data)
        return []

    available = {
        model.get("name", "").removeprefix("models/")
        for model in data.get("models") or []
        if isinstance(model, dict)
        and "generateContent" in (model.get("supportedGenerationMethods") or [])
    }
    found = [name for name in preferred if name in available]
    if found:
        logger.info("Discovered Gemini models: %s", ", ".join(found))
    else:
        logger.warning("No preferred Gemini model available; saw %s", sorted(available))
    return found
