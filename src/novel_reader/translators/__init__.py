# SPDX-License-Identifier: Apache-2.0
"""Translation backend modules.

This module provides the translation orchestrator and its backends:
Gemini (REST, one backend per model), Google Translate and OpenAI.

Google Translate needs no API key. Gemini requires an API key; OpenAI
requires the optional openai dependency and an API key.

Usage:
    from novel_reader.translators import (
        GeminiTranslator,
        GoogleTranslator,
        TranslationOrchestrator,
    )
    orchestrator = TranslationOrchestrator([
        GeminiTranslator(api_key="...", model="gemini-1.5-flash"),
        GoogleTranslator(),
    ])
    result = await orchestrator.translate("Hello", "hi")
    print(result.text, result.backend_used)

    # OpenAI (requires openai package and API key)
    from novel_reader.translators import get_openai_translator
    OpenAITranslator = get_openai_translator()
    translator = OpenAITranslator(api_key="your-api-key")
"""

from novel_reader.translators.base import (
    AllBackendsExhaustedError,
    BackendNotFoundError,
    ConfigurationError,
    EmptyResponseError,
    ErrorKind,
    NetworkFailureError,
    RateLimitedError,
    TranslationError,
    TranslationResult,
    Translator,
    TranslatorBackend,
    TranslatorError,
    ValidationError,
)
from novel_reader.translators.gemini import GeminiTranslator, discover_models
from novel_reader.translators.google import GoogleTranslator
from novel_reader.translators.orchestrator import TranslationOrchestrator

__all__ = [
    # Protocols, results and exceptions
    "Translator",
    "TranslatorBackend",
    "TranslationResult",
    "ErrorKind",
    "TranslatorError",
    "ValidationError",
    "ConfigurationError",
    "TranslationError",
    "RateLimitedError",
    "BackendNotFoundError",
    "EmptyResponseError",
    "NetworkFailureError",
    "AllBackendsExhaustedError",
    # Always available
    "GeminiTranslator",
    "GoogleTranslator",
    "TranslationOrchestrator",
    "discover_models",
    # Lazy import functions
    "get_openai_translator",
]


def get_openai_translator() -> type:
    """Get OpenAITranslator class with lazy import.

    This function imports OpenAITranslator only when called,
    avoiding import errors when openai package is not installed.

    Returns:
        OpenAITranslator class.

    Raises:
        ImportError: If openai package is not installed.
    """
    from novel_reader.translators.openai import OpenAITranslator

    return OpenAITranslator
