# SPDX-License-Identifier: Apache-2.0
"""In-memory page translation cache."""

from __future__ import annotations


class PageTranslationCache:
    """Translated text per page for one open document and language.

    Entries are written once and never evicted for the lifetime of the
    document, so the cache grows without bound. ``get`` is a plain lookup
    and never triggers I/O.
    """

    def __init__(self) -> None:
        self._entries: dict[int, str] = {}

    def get(self, page: int) -> str | None:
        """Return the cached text for ``page``, or None if not fetched yet."""
        return self._entries.get(page)

    def put(self, page: int, text: str) -> None:
        """Store the translated text for ``page``."""
        self._entries[page] = text

    def __contains__(self, page: object) -> bool:
        return page in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def pages(self) -> list[int]:
        """Cached page indices in ascending order."""
        return sorted(self._entries)

    def clear(self) -> None:
        """Drop every entry (document closed)."""
        self._entries.clear()
