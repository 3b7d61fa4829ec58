#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
"""Narrated reading sample script.

Shows the library API behind the novel-reader command: a translation
cascade, a page source, and the playback controller narrating pages
until the end of the document.

Usage:
    cd examples
    python read_novel.py

Environment variables (loaded from .env):
    GEMINI_API_KEY: Required for gemini/* backends
    OPENAI_API_KEY: Required for openai backends
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

from novel_reader.config import TranslationConfig, create_orchestrator
from novel_reader.document import PdfPageSource
from novel_reader.reader import ConsoleSpeech, PlaybackController, ReaderState

PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")


# =============================================================================
# Settings
# =============================================================================

# Cascade in preference order; "google" needs no API key
BACKENDS = ("gemini/gemini-1.5-flash", "gemini/gemini-pro", "google")

TARGET_LANG = "hi"
START_PAGE = 1
WORDS_PER_MINUTE = 240.0

INPUT_PDF = Path(__file__).parent / "novel.pdf"


# =============================================================================
# Main
# =============================================================================


async def main() -> None:
    if not INPUT_PDF.exists():
        print(f"Error: Input PDF not found: {INPUT_PDF}")
        sys.exit(1)

    config = TranslationConfig.from_env()
    config.backends = BACKENDS
    if not config.gemini_api_key:
        # Fall back to the keyless backend only
        config.backends = ("google",)
    orchestrator = create_orchestrator(config)

    print("=" * 60)
    print(f"Input:     {INPUT_PDF}")
    print(f"Cascade:   {' -> '.join(orchestrator.backend_names)}")
    print(f"Language:  {TARGET_LANG}")
    print("=" * 60)

    finished = asyncio.Event()

    def on_event(event: str, state: ReaderState) -> None:
        if event == "loading":
            print(f"\nTranslating page {state.current_page}/{state.total_pages}...")
        elif event == "error":
            print(f"Stopped: {state.error}")
            finished.set()
        elif event == "end_of_document":
            print("\nEnd of document.")
            finished.set()

    try:
        with PdfPageSource(INPUT_PDF) as source:
            controller = PlaybackController(
                source,
                orchestrator,
                ConsoleSpeech(words_per_minute=WORDS_PER_MINUTE),
                target_lang=TARGET_LANG,
                listener=on_event,
                start_page=START_PAGE,
            )
            await controller.start_narration()
            await finished.wait()
            await controller.close()
    finally:
        await orchestrator.close()


if __name__ == "__main__":
    asyncio.run(main())
