"""Fixed-size text chunking with overlapping windows.

Splits source text into segments of at most ``chunk_size`` characters,
each starting ``chunk_size - overlap`` characters after the previous one,
so that a sentence straddling a boundary appears whole in at least one
chunk.  The default window (1000 characters, 100 overlap) matches what the
embedding model handles comfortably.

Two boundary modes:

1. **character** (default) -- windows are cut at exact character offsets.
   The loop keeps advancing until the cursor passes the end of the text, so
   a short trailing chunk made only of overlap is emitted too::

       TextChunker(4, 1).split("abcdefghij") == ["abcd", "defg", "ghij", "j"]

2. **word** -- a non-final window is pulled back to the last whitespace
   inside it, provided the shortened window is still longer than the
   overlap (otherwise the hard cut is kept).  The next window starts
   ``overlap`` characters before that end.  The sweep stops once a window
   reaches the end of the text.

Both modes are pure and deterministic: the same text always yields the
same chunks in the same order.
"""

from __future__ import annotations

from typing import NamedTuple

import structlog

from src.models.knowledge import ChunkBoundary
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 100


class TextSpan(NamedTuple):
    """One chunk with its position in the source text."""

    index: int
    start: int
    text: str


class TextChunker:
    """Splits text into overlapping fixed-size chunks.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1000).
    overlap:
        Characters shared by consecutive chunks (default 100).  Must be
        smaller than ``chunk_size`` or the cursor could never advance.
    boundary:
        :class:`ChunkBoundary` mode, or its string value.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
        boundary: ChunkBoundary | str = ChunkBoundary.CHARACTER,
    ) -> None:
        if chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0:
            raise ConfigurationError(f"overlap must not be negative, got {overlap}")
        if overlap >= chunk_size:
            raise ConfigurationError(
                f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        try:
            self._boundary = ChunkBoundary(boundary)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown chunk boundary mode: {boundary!r}") from exc

        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    @property
    def boundary(self) -> ChunkBoundary:
        return self._boundary

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str) -> list[str]:
        """Return the chunk texts of *text* in order.  Empty input yields []."""
        return [span.text for span in self.chunk(text)]

    def chunk(self, text: str) -> list[TextSpan]:
        """Split *text* into :class:`TextSpan` windows with their start offsets."""
        if not text:
            return []

        if self._boundary is ChunkBoundary.WORD:
            spans = self._chunk_words(text)
        else:
            spans = self._chunk_characters(text)

        logger.debug(
            "chunking_complete",
            num_chunks=len(spans),
            text_length=len(text),
            boundary=self._boundary.value,
        )
        return spans

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _chunk_characters(self, text: str) -> list[TextSpan]:
        step = self._chunk_size - self._overlap
        spans: list[TextSpan] = []
        cursor = 0
        while cursor < len(text):
            end = min(cursor + self._chunk_size, len(text))
            spans.append(TextSpan(len(spans), cursor, text[cursor:end]))
            cursor += step
        return spans

    def _chunk_words(self, text: str) -> list[TextSpan]:
        spans: list[TextSpan] = []
        cursor = 0
        while cursor < len(text):
            end = min(cursor + self._chunk_size, len(text))
            if end < len(text):
                end = self._pull_back_to_whitespace(text, cursor, end)
            spans.append(TextSpan(len(spans), cursor, text[cursor:end]))
            if end >= len(text):
                break
            cursor = end - self._overlap
        return spans

    def _pull_back_to_whitespace(self, text: str, start: int, end: int) -> int:
        """Return the offset just after the last whitespace in ``text[start:end]``.

        Falls back to *end* when no whitespace leaves a window longer than
        the overlap.
        """
        for pos in range(end - 1, start + self._overlap, -1):
            if text[pos].isspace():
                return pos + 1
        return end
