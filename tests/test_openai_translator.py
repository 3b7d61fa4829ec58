# SPDX-License-Identifier: Apache-2.0
"""Tests for the OpenAI translator backend."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError, NotFoundError, RateLimitError

from novel_reader.translators.base import (
    BackendNotFoundError,
    ConfigurationError,
    EmptyResponseError,
    NetworkFailureError,
    RateLimitedError,
)
from novel_reader.translators.openai import OpenAITranslator

CHAT_URL = "https://api.openai.com/v1/chat/completions"


def make_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def http_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", CHAT_URL))


class TestOpenAITranslatorModel:
    """Tests for model configuration."""

    def test_requires_api_key(self) -> None:
        with pytest.raises(ConfigurationError):
            OpenAITranslator(api_key="")

    @patch.dict(os.environ, {"OPENAI_MODEL": "gpt-4o"}, clear=False)
    def test_model_from_env_variable(self) -> None:
        """Model can be set via OPENAI_MODEL environment variable."""
        with patch("openai.AsyncOpenAI"):
            translator = OpenAITranslator(api_key="test-key")
            assert translator._model == "gpt-4o"

    @patch.dict(os.environ, {"OPENAI_MODEL": "gpt-4o"}, clear=False)
    def test_model_constructor_overrides_env(self) -> None:
        """Constructor argument should override environment variable."""
        with patch("openai.AsyncOpenAI"):
            translator = OpenAITranslator(api_key="test-key", model="gpt-4.1-mini")
            assert translator._model == "gpt-4.1-mini"

    def test_model_default_when_no_env(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch("openai.AsyncOpenAI"):
            translator = OpenAITranslator(api_key="test-key")
            assert translator._model == OpenAITranslator.DEFAULT_MODEL


class TestOpenAITranslatorTranslate:
    """Tests for translation and error classification."""

    @pytest.fixture
    def mock_translator(self) -> OpenAITranslator:
        """Create a translator with mocked OpenAI client."""
        with patch("openai.AsyncOpenAI"):
            translator = OpenAITranslator(api_key="test-key", model="gpt-4o-mini")
            translator._client = AsyncMock()
            return translator

    @pytest.mark.asyncio
    async def test_success(self, mock_translator: OpenAITranslator) -> None:
        create = AsyncMock(return_value=make_response("Bonjour"))
        mock_translator._client.chat.completions.create = create  # type: ignore[union-attr]

        result = await mock_translator.translate("Hello", "fr")

        assert result == "Bonjour"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert "French" in kwargs["messages"][1]["content"]
        assert "Hello" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "  \n"])
    async def test_empty_content(
        self, mock_translator: OpenAITranslator, content: str | None
    ) -> None:
        mock_translator._client.chat.completions.create = AsyncMock(  # type: ignore[union-attr]
            return_value=make_response(content)
        )

        with pytest.raises(EmptyResponseError):
            await mock_translator.translate("Hello", "fr")

    @pytest.mark.asyncio
    async def test_rate_limit(self, mock_translator: OpenAITranslator) -> None:
        error = RateLimitError("Rate limit reached", response=http_response(429), body=None)
        mock_translator._client.chat.completions.create = AsyncMock(  # type: ignore[union-attr]
            side_effect=error
        )

        with pytest.raises(RateLimitedError) as exc_info:
            await mock_translator.translate("Hello", "fr")

        assert exc_info.value.backend == "openai"
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_model_not_found(self, mock_translator: OpenAITranslator) -> None:
        error = NotFoundError("model not found", response=http_response(404), body=None)
        mock_translator._client.chat.completions.create = AsyncMock(  # type: ignore[union-attr]
            side_effect=error
        )

        with pytest.raises(BackendNotFoundError):
            await mock_translator.translate("Hello", "fr")

    @pytest.mark.asyncio
    async def test_connection_error(self, mock_translator: OpenAITranslator) -> None:
        error = APIConnectionError(request=httpx.Request("POST", CHAT_URL))
        mock_translator._client.chat.completions.create = AsyncMock(  # type: ignore[union-attr]
            side_effect=error
        )

        with pytest.raises(NetworkFailureError):
            await mock_translator.translate("Hello", "fr")

    @pytest.mark.asyncio
    async def test_close(self, mock_translator: OpenAITranslator) -> None:
        client = mock_translator._client

        await mock_translator.close()

        client.close.assert_awaited_once()  # type: ignore[union-attr]
        assert mock_translator._client is None
