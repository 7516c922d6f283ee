"""Deterministic fixed-window text chunking with optional overlap.

Splits document text into :class:`~ragflow.models.rag.Chunk` records whose
ids are derived from the document id and the chunk's index.  Chunking runs
inside a durable step, and a crash before the step result is stored means
it runs again, so the output must be byte-identical every time: no clock,
no randomness, no I/O.

Window layout for ``chunk_size=5, overlap=2`` over ``"abcdefghij"``::

    [abcde]
       [defgh]
          [ghij]

Windows start every ``chunk_size - overlap`` characters and stop as soon as
one reaches the end of the text.  Chunk text is never stripped, so joining
the chunks and dropping the first ``overlap`` characters of every chunk
after the first reconstructs the input exactly.
"""

from __future__ import annotations

import structlog

from ragflow.models.rag import Chunk
from ragflow.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


class TextChunker:
    """Splits text into fixed-size character windows.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 500).
    overlap:
        Characters shared by consecutive chunks (default 0).  Must be
        smaller than *chunk_size*.

    Raises
    ------
    ConfigurationError
        If the parameters can never produce progress.
    """

    def __init__(self, chunk_size: int = 500, overlap: int = 0) -> None:
        if chunk_size <= 0:
            raise ConfigurationError(message=f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0:
            raise ConfigurationError(message=f"overlap must not be negative, got {overlap}")
        if overlap >= chunk_size:
            raise ConfigurationError(
                message=f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, document_id: str, text: str) -> list[Chunk]:
        """Split *text* into ordered chunks owned by *document_id*.

        Parameters
        ----------
        document_id:
            Owning document id; chunk ids are ``"{document_id}_{index}"``.
        text:
            The full document text.

        Returns
        -------
        list[Chunk]
            Contiguous indices from 0.  Empty input returns an empty list;
            whitespace-only input is content like any other.  Input no
            longer than ``chunk_size`` returns exactly one chunk.
        """
        if not text:
            return []

        step = self._chunk_size - self._overlap
        chunks: list[Chunk] = []
        start = 0
        while True:
            window = text[start : start + self._chunk_size]
            index = len(chunks)
            chunks.append(
                Chunk(
                    id=f"{document_id}_{index}",
                    document_id=document_id,
                    index=index,
                    content=window,
                )
            )
            if start + self._chunk_size >= len(text):
                break
            start += step

        logger.debug(
            "chunking_complete",
            document_id=document_id,
            num_chunks=len(chunks),
            text_length=len(text),
        )
        return chunks

    def reconstruct(self, chunks: list[Chunk]) -> str:
        """Rebuild the source text from chunks produced by this chunker."""
        ordered = sorted(chunks, key=lambda c: c.index)
        if not ordered:
            return ""
        parts = [ordered[0].content]
        parts.extend(c.content[self._overlap :] for c in ordered[1:])
        return "".join(parts)
