# SPDX-License-Identifier: Apache-2.0
"""HTTP translate API in front of the translation orchestrator."""

from __future__ import annotations

import logging
import math
from typing import Any

from aiohttp import web

from novel_reader.translators.base import (
    AllBackendsExhaustedError,
    ErrorKind,
    RateLimitedError,
    TranslationError,
    Translator,
    ValidationError,
)

logger = logging.getLogger(__name__)

TRANSLATOR_KEY: web.AppKey[Translator] = web.AppKey("translator", Translator)
BACKENDS_KEY: web.AppKey[tuple[str, ...]] = web.AppKey("backends", tuple)


def _error_response(
    status: int,
    error: str,
    kind: str,
    details: str,
    headers: dict[str, str] | None = None,
) -> web.Response:
    return web.json_response(
        {"error": error, "kind": kind, "details": details},
        status=status,
        headers=headers,
    )


async def index(request: web.Request) -> web.Response:
    backends = ", ".join(request.app[BACKENDS_KEY]) or "none"
    return web.Response(text=f"Backend is running! Backends: {backends}")


async def translate(request: web.Request) -> web.Response:
    """POST /api/translate {"text": ..., "targetLang": ...}."""
    try:
        body: Any = await request.json()
    except ValueError:
        return _error_response(400, "Invalid JSON body", "validation", "")
    if not isinstance(body, dict):
        return _error_response(400, "Invalid JSON body", "validation", "")

    text = body.get("text")
    target_lang = body.get("targetLang") or "hi"
    if not isinstance(text, str) or not isinstance(target_lang, str):
        return _error_response(400, "No text provided", "validation", "")

    logger.info("Translating %d chars to %s", len(text), target_lang)
    translator = request.app[TRANSLATOR_KEY]
    try:
        result = await translator.translate(text, target_lang)
    except ValidationError as exc:
        return _error_response(400, "No text provided", "validation", str(exc))
    except TranslationError as exc:
        return _translation_failure(exc)

    return web.json_response(
        {
            "original": text,
            "translatedText": result.text,
            "lang": target_lang,
            "backend": result.backend_used,
        }
    )


def _translation_failure(exc: TranslationError) -> web.Response:
    cause = exc.last_error if isinstance(exc, AllBackendsExhaustedError) else exc
    logger.error("Translation failed: %s", exc)
    if isinstance(cause, RateLimitedError):
        headers = None
        if cause.retry_after:
            headers = {"Retry-After": str(math.ceil(cause.retry_after))}
        return _error_response(
            429, "Translation rate limited", ErrorKind.RATE_LIMITED.value, str(exc), headers
        )
    return _error_response(502, "Translation failed", cause.kind.value, str(exc))


def create_app(translator: Translator, backends: tuple[str, ...] = ()) -> web.Application:
    """Build the aiohttp application.

    Args:
        translator: Orchestrator serving translate requests.
        backends: Backend names reported by the status route.
    """
    app = web.Application()
    app[TRANSLATOR_KEY] = translator
    app[BACKENDS_KEY] = backends
    app.router.add_get("/", index)
    app.router.add_post("/api/translate", translate)

    async def _close_translator(app: web.Application) -> None:
        await app[TRANSLATOR_KEY].close()

    app.on_cleanup.append(_close_translator)
    return app
