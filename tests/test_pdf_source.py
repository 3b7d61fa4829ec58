# SPDX-License-Identifier: Apache-2.0
"""Tests for PDF page text extraction."""

from __future__ import annotations

import asyncio
import io
import threading
from pathlib import Path

import pypdfium2 as pdfium  # type: ignore[import-untyped]
import pytest

from novel_reader.document import PageContentSource, PdfPageSource, normalize_text
from novel_reader.translators import ValidationError


def blank_pdf(pages: int) -> bytes:
    """Build a PDF of blank (text-less) pages."""
    pdf = pdfium.PdfDocument.new()
    for _ in range(pages):
        pdf.new_page(200, 300)
    buffer = io.BytesIO()
    pdf.save(buffer)
    pdf.close()
    return buffer.getvalue()


class TestNormalizeText:
    def test_control_characters(self) -> None:
        assert normalize_text("infor\x02mation\r\n") == "infor-mation"
        assert normalize_text("soft\xadhyphen\x00") == "softhyphen"

    def test_collapses_blank_lines(self) -> None:
        text = "First paragraph.  \n\n\n\nSecond paragraph.\n\n"
        assert normalize_text(text) == "First paragraph.\n\nSecond paragraph."

    def test_whitespace_only(self) -> None:
        assert normalize_text(" \n\x0c\n  ") == ""


class TestPdfPageSource:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            PdfPageSource(tmp_path / "missing.pdf")

    def test_invalid_type(self) -> None:
        with pytest.raises(TypeError):
            PdfPageSource(42)  # type: ignore[arg-type]

    def test_page_count(self) -> None:
        with PdfPageSource(blank_pdf(3)) as source:
            assert isinstance(source, PageContentSource)
            assert source.page_count == 3

    def test_open_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "novel.pdf"
        path.write_bytes(blank_pdf(2))

        with PdfPageSource(path) as source:
            assert source.page_count == 2
            assert source.source_name == "novel.pdf"

    @pytest.mark.asyncio
    async def test_image_only_page_is_empty(self) -> None:
        with PdfPageSource(blank_pdf(1)) as source:
            assert await source.extract_page_text(1) == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [0, 3])
    async def test_page_out_of_range(self, page: int) -> None:
        with PdfPageSource(blank_pdf(2)) as source:
            with pytest.raises(ValidationError):
                await source.extract_page_text(page)

    def test_closed(self) -> None:
        source = PdfPageSource(blank_pdf(1))
        source.close()
        with pytest.raises(RuntimeError):
            _ = source.page_count

    def test_close_waits_for_running_extraction(self) -> None:
        """close() blocks while a worker thread is inside pdfium."""
        source = PdfPageSource(blank_pdf(1))
        source._lock.acquire()
        closer = threading.Thread(target=source.close)
        closer.start()
        try:
            closer.join(timeout=0.2)
            assert closer.is_alive()
        finally:
            source._lock.release()
        closer.join(timeout=5)

        assert not closer.is_alive()
        with pytest.raises(RuntimeError):
            source._extract_sync(1)

    @pytest.mark.asyncio
    async def test_cancelled_extraction_then_close(self) -> None:
        source = PdfPageSource(blank_pdf(2))
        task = asyncio.create_task(source.extract_page_text(1))
        await asyncio.sleep(0)
        task.cancel()
        source.close()

        with pytest.raises(asyncio.CancelledError):
            await task
