# SPDX-License-Identifier: Apache-2.0
"""Translation configuration and backend construction."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import ClassVar

from novel_reader.translators import get_openai_translator
from novel_reader.translators.base import ConfigurationError, TranslatorBackend
from novel_reader.translators.gemini import PREFERRED_MODELS, GeminiTranslator
from novel_reader.translators.google import GoogleTranslator
from novel_reader.translators.orchestrator import TranslationOrchestrator

logger = logging.getLogger(__name__)


def _default_backends() -> tuple[str, ...]:
    return tuple(f"gemini/{model}" for model in PREFERRED_MODELS)


@dataclass
class TranslationConfig:
    """Configuration for the translation cascade.

    Attributes:
        backends: Backend identifiers in cascade order, as "provider/model"
            ("gemini/gemini-1.5-flash", "openai/gpt-4o-mini") or a bare
            provider ("google", "openai").
        target_lang: Default target language code.
        gemini_api_key: Gemini API key (or GEMINI_API_KEY).
        openai_api_key: OpenAI API key (or OPENAI_API_KEY).
        gemini_api_base: Override for the Gemini REST endpoint.
        request_timeout: Per-request timeout in seconds.
    """

    backends: tuple[str, ...] = field(default_factory=_default_backends)
    target_lang: str = "hi"
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    gemini_api_base: str | None = None
    request_timeout: float = 60.0

    PROVIDERS: ClassVar[tuple[str, ...]] = ("gemini", "openai", "google")

    # Environment variable names
    ENV_VARS: ClassVar[dict[str, str]] = {
        "gemini_api_key": "GEMINI_API_KEY",
        "openai_api_key": "OPENAI_API_KEY",
        "backends": "NOVEL_READER_BACKENDS",
        "target_lang": "NOVEL_READER_TARGET_LANG",
    }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TranslationConfig:
        """Build a configuration from environment variables.

        NOVEL_READER_BACKENDS is a comma-separated list of identifiers.
        """
        env = os.environ if environ is None else environ
        config = cls(
            gemini_api_key=env.get(cls.ENV_VARS["gemini_api_key"]) or None,
            openai_api_key=env.get(cls.ENV_VARS["openai_api_key"]) or None,
        )
        backends = env.get(cls.ENV_VARS["backends"], "")
        if backends.strip():
            config.backends = parse_backend_list(backends)
        target = env.get(cls.ENV_VARS["target_lang"], "")
        if target.strip():
            config.target_lang = target.strip()
        return config


def parse_backend_list(value: str) -> tuple[str, ...]:
    """Split a comma-separated backend list, dropping blanks."""
    return tuple(item.strip() for item in value.split(",") if item.strip())


def split_identifier(identifier: str) -> tuple[str, str | None]:
    """Split "provider/model" into its parts.

    Raises:
        ConfigurationError: If the provider is unknown.
    """
    provider, _, model = identifier.strip().partition("/")
    provider = provider.lower()
    if provider not in TranslationConfig.PROVIDERS:
        raise ConfigurationError(
            f"Unknown translation provider '{provider}' in '{identifier}'. "
            f"Expected one of: {', '.join(TranslationConfig.PROVIDERS)}"
        )
    return provider, model or None


def create_backend(identifier: str, config: TranslationConfig) -> TranslatorBackend:
    """Create a backend from its identifier.

    Args:
        identifier: "provider/model" or bare provider name.
        config: Configuration holding API keys and timeouts.

    Returns:
        Backend instance.

    Raises:
        ConfigurationError: If the provider is unknown or its key is missing.
    """
    provider, model = split_identifier(identifier)

    if provider == "gemini":
        if not config.gemini_api_key:
            raise ConfigurationError(
                f"Gemini API key is required for backend '{identifier}'. "
                "Set GEMINI_API_KEY environment variable."
            )
        return GeminiTranslator(
            api_key=config.gemini_api_key,
            model=model or PREFERRED_MODELS[0],
            api_base=config.gemini_api_base,
            timeout=config.request_timeout,
        )

    if provider == "openai":
        if not config.openai_api_key:
            raise ConfigurationError(
                f"OpenAI API key is required for backend '{identifier}'. "
                "Set OPENAI_API_KEY environment variable."
            )
        OpenAITranslator = get_openai_translator()
        translator: TranslatorBackend = OpenAITranslator(
            api_key=config.openai_api_key, model=model
        )
        return translator

    return GoogleTranslator()


def create_orchestrator(config: TranslationConfig) -> TranslationOrchestrator:
    """Build the cascade described by ``config.backends``."""
    backends = [create_backend(identifier, config) for identifier in config.backends]
    logger.info("Translation cascade: %s", " -> ".join(b.name for b in backends))
    return TranslationOrchestrator(backends)
