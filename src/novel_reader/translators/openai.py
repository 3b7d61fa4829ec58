# SPDX-License-Identifier: Apache-2.0
"""OpenAI GPT translation backend."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, NoReturn

from novel_reader.translators.base import (
    BackendNotFoundError,
    ConfigurationError,
    EmptyResponseError,
    NetworkFailureError,
    RateLimitedError,
)
from novel_reader.translators.prompts import build_prompt

if TYPE_CHECKING:
    from openai import AsyncOpenAI


DEFAULT_SYSTEM_PROMPT = (
    "You are a professional literary translator. Translate the given text "
    "accurately while preserving the original meaning, tone, and paragraph "
    "breaks. Return only the translation without any explanations."
)


class OpenAITranslator:
    """OpenAI GPT translation backend.

    Supports custom system prompts for specialized translation needs.

    Attributes:
        name: Backend identifier ("openai").
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize OpenAITranslator.

        Args:
            api_key: OpenAI API key.
            model: Model to use. Priority: argument > OPENAI_MODEL env > default.
            system_prompt: Custom system prompt for translation.

        Raises:
            ConfigurationError: If API key is not provided.
            ImportError: If openai package is not installed.
        """
        if not api_key:
            raise ConfigurationError("OpenAI API key is required")

        # Lazy import openai
        try:
            from openai import AsyncOpenAI as _AsyncOpenAI

            self._AsyncOpenAI = _AsyncOpenAI
        except ImportError:
            raise ImportError(
                "openai is required for OpenAI backend. "
                "Install with: pip install novel-reader[openai]"
            ) from None

        self._api_key = api_key
        self._model = model or os.environ.get("OPENAI_MODEL") or self.DEFAULT_MODEL
        self._system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self._client: AsyncOpenAI | None = None

    @property
    def name(self) -> str:
        """Return backend name."""
        return "openai"

    def _ensure_client(self) -> AsyncOpenAI:
        """Ensure OpenAI client exists.

        Returns:
            Active OpenAI async client.
        """
        if self._client is None:
            self._client = self._AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def translate(self, text: str, target_lang: str) -> str:
        """Translate a single text using OpenAI chat completions.

        Args:
            text: Text to translate.
            target_lang: Target language code ("hi", "es", "fr").

        Returns:
            Translated text.

        Raises:
            TranslationError: A classified subclass on failure.
        """
        from openai import OpenAIError

        client = self._ensure_client()
        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": self._system_prompt},
                    {"role": "user", "content": build_prompt(text, target_lang)},
                ],
                temperature=0.2,
            )
        except OpenAIError as e:
            self._handle_openai_error(e)

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise EmptyResponseError("OpenAI returned empty response", backend=self.name)
        return str(content)

    def _handle_openai_error(self, error: Any) -> NoReturn:
        """Classify OpenAI API errors.

        Raises:
            RateLimitedError: On rate limit or exhausted quota.
            BackendNotFoundError: On unknown model or refused credentials.
            NetworkFailureError: On connection, timeout and other API errors.
        """
        from openai import (
            AuthenticationError,
            NotFoundError,
            PermissionDeniedError,
            RateLimitError,
        )

        if isinstance(error, RateLimitError):
            raise RateLimitedError(
                "OpenAI rate limit exceeded, please retry later", backend=self.name
            ) from error
        if isinstance(error, NotFoundError):
            raise BackendNotFoundError(
                f"Model '{self._model}' is not available", backend=self.name
            ) from error
        if isinstance(error, (AuthenticationError, PermissionDeniedError)):
            raise BackendNotFoundError(
                f"OpenAI refused access to model '{self._model}'", backend=self.name
            ) from error

        raise NetworkFailureError(f"OpenAI API error: {error}", backend=self.name) from error

    async def close(self) -> None:
        """Close the OpenAI client."""
        if self._client:
            await self._client.close()
            self._client = None
