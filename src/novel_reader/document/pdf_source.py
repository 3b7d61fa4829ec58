# SPDX-License-Identifier: Apache-2.0
"""Per-page text extraction using pypdfium2.

The reader never renders pages itself; it only needs the extractable text
of a page to translate or narrate it.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Optional, Protocol, Union, runtime_checkable

import pypdfium2 as pdfium  # type: ignore[import-untyped]

from novel_reader.translators.base import ValidationError

# Control characters to normalize (common in PDF hyphenation)
CONTROL_CHAR_MAP: dict[int, str] = {
    0x00: "",  # NUL -> remove
    0x02: "-",  # STX -> hyphen (soft hyphen in many PDFs)
    0x0C: "",  # FF -> remove
    0x0D: "",  # CR -> remove (CRLF becomes LF)
    0xAD: "",  # Soft hyphen -> remove
    0xFFFE: "",  # pdfium line-break marker -> remove
}


def normalize_text(text: str) -> str:
    """Normalize extracted page text.

    Replaces control characters and collapses runs of blank lines so that
    paragraphs survive as single blank-line separators.

    Args:
        text: Raw text from PDF extraction.

    Returns:
        Normalized text (may be empty for image-only pages).
    """
    cleaned = "".join(CONTROL_CHAR_MAP.get(ord(char), char) for char in text)
    lines = [line.rstrip() for line in cleaned.split("\n")]

    result: list[str] = []
    for line in lines:
        if not line and (not result or not result[-1]):
            continue
        result.append(line)
    return "\n".join(result).strip()


@runtime_checkable
class PageContentSource(Protocol):
    """Source of raw page text for an open document."""

    @property
    def page_count(self) -> int: ...

    async def extract_page_text(self, page: int) -> str:
        """Return the text of a 1-based page, possibly empty."""
        ...


class PdfPageSource:
    """Page text source backed by a PDF document.

    Example:
        >>> with PdfPageSource("novel.pdf") as source:
        ...     text = await source.extract_page_text(1)
    """

    def __init__(self, pdf_source: Union[Path, str, bytes]) -> None:
        """Open the PDF document.

        Args:
            pdf_source: Path to PDF file or PDF bytes

        Raises:
            TypeError: If pdf_source is not Path, str, or bytes
            FileNotFoundError: If the file path doesn't exist
        """
        self._pdf: Optional[pdfium.PdfDocument] = None
        # pdfium is not thread-safe; extraction runs in worker threads and
        # close() must wait for one still running after its task was cancelled
        self._lock = threading.Lock()

        if isinstance(pdf_source, bytes):
            self._pdf = pdfium.PdfDocument(pdf_source)
            self.source_name = "bytes"
        elif isinstance(pdf_source, (str, Path)):
            path = Path(pdf_source)
            if not path.exists():
                raise FileNotFoundError(f"PDF file not found: {path}")
            self._pdf = pdfium.PdfDocument(str(path))
            self.source_name = path.name
        else:
            raise TypeError(
                f"pdf_source must be Path, str, or bytes, got {type(pdf_source).__name__}"
            )

    def __enter__(self) -> PdfPageSource:
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the PDF document and release resources."""
        with self._lock:
            if self._pdf is not None:
                self._pdf.close()
                self._pdf = None

    def _ensure_open(self) -> pdfium.PdfDocument:
        """Ensure PDF document is open and return it."""
        if self._pdf is None:
            raise RuntimeError("PDF document is not open")
        return self._pdf

    @property
    def page_count(self) -> int:
        """Get the number of pages in the document."""
        return len(self._ensure_open())

    async def extract_page_text(self, page: int) -> str:
        """Extract the normalized text of a 1-based page.

        Raises:
            ValidationError: If page is outside [1, page_count].
        """
        if not 1 <= page <= self.page_count:
            raise ValidationError(f"Page {page} is outside 1..{self.page_count}")
        return await asyncio.to_thread(self._extract_sync, page)

    def _extract_sync(self, page: int) -> str:
        with self._lock:
            pdf_page = self._ensure_open()[page - 1]
            try:
                textpage = pdf_page.get_textpage()
                try:
                    raw: str = textpage.get_text_bounded()
                finally:
                    textpage.close()
            finally:
                pdf_page.close()
        return normalize_text(raw)
