# SPDX-License-Identifier: Apache-2.0
"""
Novel Reader - CLI Tools

Reads a PDF page by page with on-demand translation, optionally narrating
the translated pages and advancing automatically. A second command serves
the translation cascade over HTTP so several readers can share it.

Usage:
    novel-reader <book.pdf> [options]
    novel-reader-server [options]

Examples:
    novel-reader novel.pdf --page 12 -t hi           # Translate page 12 to Hindi
    novel-reader novel.pdf --narrate --wpm 220       # Read aloud from page 1
    novel-reader novel.pdf --server http://localhost:5000
    novel-reader-server --port 5000 --discover
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn, Sequence

from aiohttp import web
from dotenv import load_dotenv

from novel_reader.config import (
    TranslationConfig,
    create_orchestrator,
    split_identifier,
)
from novel_reader.document.pdf_source import PdfPageSource
from novel_reader.reader.api_client import ApiTranslationClient
from novel_reader.reader.playback import PlaybackController, ReaderMode, ReaderState
from novel_reader.reader.speech import ConsoleSpeech
from novel_reader.server import create_app
from novel_reader.translators.base import ConfigurationError, Translator, ValidationError
from novel_reader.translators.gemini import discover_models

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5000

ENVIRONMENT_HELP = """
Environment Variables:
  GEMINI_API_KEY            Gemini API key (required for gemini/* backends)
  OPENAI_API_KEY            OpenAI API key (required for openai backends)
  NOVEL_READER_BACKENDS     Comma-separated cascade, e.g.
                            gemini/gemini-1.5-flash,gemini/gemini-pro,google
  NOVEL_READER_TARGET_LANG  Default target language code (default: hi)
"""


def _add_backend_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-b",
        "--backend",
        action="append",
        dest="backends",
        metavar="ID",
        help=(
            "Translation backend in cascade order; repeat for fallbacks "
            "(gemini/<model>, openai[/<model>], google)"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse reader command line arguments.

    Returns:
        Parsed argument Namespace.
    """
    parser = argparse.ArgumentParser(
        prog="novel-reader",
        description="Read a PDF with on-demand page translation and narration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=ENVIRONMENT_HELP,
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Path to PDF file to read",
    )
    parser.add_argument(
        "-p",
        "--page",
        type=int,
        default=1,
        help="Page to start on (default: 1)",
    )
    parser.add_argument(
        "-t",
        "--target",
        help="Target language code (default: NOVEL_READER_TARGET_LANG or hi)",
    )
    parser.add_argument(
        "-n",
        "--narrate",
        action="store_true",
        help="Read translated pages aloud, advancing until the end of the document",
    )
    parser.add_argument(
        "--wpm",
        type=float,
        default=180.0,
        help="Narration speed in words per minute (default: 180)",
    )
    parser.add_argument(
        "--server",
        metavar="URL",
        help="Use a running novel-reader-server instead of local backends",
    )
    _add_backend_options(parser)
    return parser.parse_args(argv)


def parse_server_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse server command line arguments."""
    parser = argparse.ArgumentParser(
        prog="novel-reader-server",
        description="Serve the translation cascade at POST /api/translate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=ENVIRONMENT_HELP,
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--discover",
        action="store_true",
        help="Ask the Gemini API which preferred models this key can use",
    )
    _add_backend_options(parser)
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TranslationConfig:
    """Environment configuration overridden by command line options."""
    config = TranslationConfig.from_env()
    if args.backends:
        config.backends = tuple(args.backends)
    if getattr(args, "target", None):
        config.target_lang = args.target
    return config


def configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")


def print_state(event: str, state: ReaderState) -> None:
    """Render reader events to the terminal."""
    header = f"--- Page {state.current_page}/{state.total_pages} ({state.target_lang}) ---"
    if event == "render" and state.text is not None:
        print(header)
        if not state.text:
            print("(This page has no extractable text; it may be an image.)")
        elif state.mode is not ReaderMode.NARRATED:
            # Narrated text is printed by the speech engine
            print(state.text)
    elif event == "error":
        print(f"Error: {state.error}", file=sys.stderr)
    elif event == "end_of_document":
        print("End of document.")


async def run(args: argparse.Namespace) -> int:
    """Open the document and translate or narrate it.

    Returns:
        Exit code (0: success, 1: failure).
    """
    input_path: Path = args.input
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1
    if input_path.suffix.lower() != ".pdf":
        print(f"Error: Not a PDF file: {input_path}", file=sys.stderr)
        return 1

    config = build_config(args)
    translator: Translator
    try:
        if args.server:
            translator = ApiTranslationClient(args.server, timeout=config.request_timeout * 2)
        else:
            translator = create_orchestrator(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    finished = asyncio.Event()

    def listener(event: str, state: ReaderState) -> None:
        print_state(event, state)
        if event in ("error", "end_of_document"):
            finished.set()

    try:
        with PdfPageSource(input_path) as source:
            try:
                controller = PlaybackController(
                    source,
                    translator,
                    ConsoleSpeech(words_per_minute=args.wpm),
                    target_lang=config.target_lang,
                    listener=listener,
                    start_page=args.page,
                )
            except ValidationError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1

            try:
                if args.narrate:
                    await controller.start_narration()
                    await finished.wait()
                else:
                    await controller.show_translated()
            finally:
                await controller.close()
            return 1 if controller.state.error else 0
    finally:
        await translator.close()


async def serve(args: argparse.Namespace) -> int:
    """Run the HTTP translate API until interrupted."""
    config = build_config(args)
    if args.discover:
        if not config.gemini_api_key:
            print("Error: --discover needs GEMINI_API_KEY", file=sys.stderr)
            return 1
        models = await discover_models(config.gemini_api_key, api_base=config.gemini_api_base)
        others = tuple(b for b in config.backends if split_identifier(b)[0] != "gemini")
        if models:
            config.backends = tuple(f"gemini/{m}" for m in models) + others

    try:
        orchestrator = create_orchestrator(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    app = create_app(orchestrator, orchestrator.backend_names)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, args.host, args.port)
    await site.start()
    print(f"Server running on http://{args.host}:{args.port}")
    print(f"Backends: {' -> '.join(orchestrator.backend_names)}")
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
    return 0


def main(argv: Sequence[str] | None = None) -> NoReturn:
    """Reader entry point."""
    load_dotenv()
    args = parse_args(argv)
    configure_logging(args.verbose)
    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)


def server_main(argv: Sequence[str] | None = None) -> NoReturn:
    """Server entry point."""
    load_dotenv()
    args = parse_server_args(argv)
    configure_logging(args.verbose)
    try:
        exit_code = asyncio.run(serve(args))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
