# SPDX-License-Identifier: Apache-2.0
"""Base classes, result types and protocols for translation backends."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Protocol, runtime_checkable


class ErrorKind(str, Enum):
    """Stable classification of translation failures."""

    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    EMPTY_RESPONSE = "empty_response"
    NETWORK_FAILURE = "network_failure"
    ALL_BACKENDS_EXHAUSTED = "all_backends_exhausted"


class TranslatorError(Exception):
    """Base exception for translator module."""

    pass


class ValidationError(TranslatorError, ValueError):
    """Bad local input (empty text, page out of range).

    Raised before any I/O is attempted.
    """

    pass


class ConfigurationError(TranslatorError):
    """Configuration error (missing API key, unknown provider, etc.).

    This error type is NOT retryable - fix the configuration first.
    """

    pass


class TranslationError(TranslatorError):
    """Error during translation by a remote backend.

    Subclasses fix ``kind`` so callers can pick a user-facing message
    without inspecting the message text.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.NETWORK_FAILURE

    def __init__(self, message: str, backend: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.backend = backend


class RateLimitedError(TranslationError):
    """Quota or rate-limit signal from a backend."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        backend: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, backend)
        self.retry_after = retry_after


class BackendNotFoundError(TranslationError):
    """Backend (model, language pair) is unknown or unsupported."""

    kind = ErrorKind.NOT_FOUND


class EmptyResponseError(TranslationError):
    """Response parsed but held no usable candidate text."""

    kind = ErrorKind.EMPTY_RESPONSE


class NetworkFailureError(TranslationError):
    """Timeout, connection failure, server error or malformed response."""

    kind = ErrorKind.NETWORK_FAILURE


class AllBackendsExhaustedError(TranslationError):
    """Every configured backend was attempted once and failed.

    Attributes:
        last_error: The most recent classified failure.
        attempts: Backend names in the order they were tried.
    """

    kind = ErrorKind.ALL_BACKENDS_EXHAUSTED

    def __init__(
        self,
        last_error: TranslationError,
        attempts: list[str],
    ) -> None:
        super().__init__(
            f"All {len(attempts)} backends failed; last error "
            f"({last_error.kind.value}): {last_error.message}"
        )
        self.last_error = last_error
        self.attempts = attempts


ERROR_CLASSES: dict[ErrorKind, type[TranslationError]] = {
    ErrorKind.RATE_LIMITED: RateLimitedError,
    ErrorKind.NOT_FOUND: BackendNotFoundError,
    ErrorKind.EMPTY_RESPONSE: EmptyResponseError,
    ErrorKind.NETWORK_FAILURE: NetworkFailureError,
}


@dataclass(frozen=True)
class TranslationResult:
    """Translated text and the backend that produced it."""

    text: str
    backend_used: str


@runtime_checkable
class TranslatorBackend(Protocol):
    """Protocol definition for remote translation backends.

    All backend implementations must conform to this protocol.
    """

    @property
    def name(self) -> str:
        """Backend identifier ("gemini-1.5-flash", "openai", "google")."""
        ...

    async def translate(self, text: str, target_lang: str) -> str:
        """Translate a single text.

        Args:
            text: Non-empty text to translate.
            target_lang: Target language code ("hi", "es", "fr").

        Returns:
            Translated text.

        Raises:
            TranslationError: A classified subclass on failure.
        """
        ...


@runtime_checkable
class Translator(Protocol):
    """Anything that turns page text into a ``TranslationResult``.

    Implemented by the in-process orchestrator and by the HTTP API client.
    """

    async def translate(self, text: str, target_lang: str) -> TranslationResult: ...

    async def close(self) -> None: ...
