# SPDX-License-Identifier: Apache-2.0
"""Reader error definitions and user-facing messages."""

from __future__ import annotations

import math

from novel_reader.translators.base import (
    AllBackendsExhaustedError,
    ErrorKind,
    RateLimitedError,
    TranslationError,
    ValidationError,
)


class PageRangeError(ValidationError):
    """Requested page is outside the document."""

    def __init__(self, page: int, total_pages: int) -> None:
        super().__init__(f"Page {page} is outside 1..{total_pages}")
        self.page = page
        self.total_pages = total_pages


class SpeechError(Exception):
    """The speech engine reported a failure."""


def root_error(error: BaseException) -> BaseException:
    """Unwrap an exhausted cascade to the failure that ended it."""
    if isinstance(error, AllBackendsExhaustedError):
        return error.last_error
    return error


def user_message(error: BaseException) -> str:
    """Human-readable inline message for a failed page resolution."""
    cause = root_error(error)
    if isinstance(cause, RateLimitedError):
        if cause.retry_after:
            return f"Rate limited, try again in {math.ceil(cause.retry_after)} seconds."
        return "Rate limited, try again later."
    if isinstance(cause, ValidationError):
        return str(cause)
    if isinstance(cause, SpeechError):
        return f"Narration stopped: {cause}"
    if isinstance(cause, TranslationError) and cause.kind == ErrorKind.NOT_FOUND:
        return "Translation unavailable: no configured translator supports this request."
    return f"Translation unavailable: {cause}"
