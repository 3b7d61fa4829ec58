# SPDX-License-Identifier: Apache-2.0
"""Document access: per-page text extraction."""

from .pdf_source import PageContentSource, PdfPageSource, normalize_text

__all__ = [
    "PageContentSource",
    "PdfPageSource",
    "normalize_text",
]
