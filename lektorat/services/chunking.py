"""
Paragraph-based text chunking for long documents.

Splitting strategy:
  - Split on blank lines (two or more newlines).
  - Greedily pack paragraphs into a chunk while the chunk stays within
    MAX_CHUNK_SIZE characters (paragraphs are joined with a blank line,
    hence the +2 in the size check).
  - A single paragraph longer than MAX_CHUNK_SIZE is never split further;
    it becomes an oversized chunk of its own.

Merging sorts by chunk index first, so processed chunks may arrive in any
order.
"""
from __future__ import annotations

import dataclasses
import logging
import re
from typing import Iterable, List, Optional, Sequence, TypeVar

from lektorat.config import settings

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK_RE = re.compile(r"\n\n+")
_PARAGRAPH_JOINER = "\n\n"

T = TypeVar("T")


@dataclasses.dataclass(frozen=True)
class TextChunk:
    """A contiguous slice of document text; ``index`` is its original position."""

    text: str
    index: int


class ChunkingService:
    """Splits document text into bounded chunks and merges them back."""

    def __init__(self, max_chunk_size: Optional[int] = None) -> None:
        self.max_chunk_size = max_chunk_size or settings.MAX_CHUNK_SIZE

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def needs_chunking(self, text: str) -> bool:
        """Documents at or under the limit are sent in one request."""
        return len(text) > self.max_chunk_size

    def split(self, text: str) -> List[TextChunk]:
        """
        Split *text* on paragraph boundaries into chunks of at most
        ``max_chunk_size`` characters.

        Returns chunks in increasing index order, ``chunks[i].index == i``.
        Empty or whitespace-only input yields an empty list.
        """
        chunks: List[TextChunk] = []
        current = ""

        for paragraph in _PARAGRAPH_BREAK_RE.split(text):
            if (
                current
                and len(current) + len(paragraph) + 2 > self.max_chunk_size
            ):
                self._seal(chunks, current)
                current = paragraph
            else:
                current += (_PARAGRAPH_JOINER if current else "") + paragraph

        if current:
            self._seal(chunks, current)

        oversized = [c.index for c in chunks if len(c.text) > self.max_chunk_size]
        if oversized:
            logger.warning(
                "split: %d oversized chunk(s) at index %s (single paragraph > %d chars)",
                len(oversized),
                oversized,
                self.max_chunk_size,
            )
        logger.info(
            "split: %d chars into %d chunks (limit %d)",
            len(text),
            len(chunks),
            self.max_chunk_size,
        )
        return chunks

    @staticmethod
    def merge(chunks: Iterable[TextChunk]) -> str:
        """Join chunk texts in index order with a blank line between them."""
        ordered = sorted(chunks, key=lambda chunk: chunk.index)
        return _PARAGRAPH_JOINER.join(chunk.text for chunk in ordered)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _seal(chunks: List[TextChunk], text: str) -> None:
        sealed = text.strip()
        if not sealed:
            return
        chunks.append(TextChunk(text=sealed, index=len(chunks)))


def flatten_change_lists(change_lists: Sequence[Sequence[T]]) -> List[T]:
    """
    Concatenate per-chunk change/note lists in chunk order.

    Categories are not merged across chunks, so the same category header
    may appear once per chunk.
    """
    flat: List[T] = []
    for items in change_lists:
        flat.extend(items)
    return flat
