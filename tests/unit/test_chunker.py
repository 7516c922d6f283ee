"""Unit tests for TextChunker — window layout, ids, reconstruction, config validation."""

from __future__ import annotations

import pytest

from ragflow.services.chunker import TextChunker
from ragflow.utils.errors import ConfigurationError


class TestChunkLayout:
    def test_empty_text_returns_no_chunks(self) -> None:
        assert TextChunker().chunk("doc", "") == []

    def test_whitespace_only_is_kept_as_content(self) -> None:
        chunker = TextChunker()
        chunks = chunker.chunk("doc", "   \n\t ")
        assert [c.content for c in chunks] == ["   \n\t "]
        assert chunker.reconstruct(chunks) == "   \n\t "

    def test_short_text_is_single_chunk(self) -> None:
        chunks = TextChunker(chunk_size=500).chunk("doc", "hello world")
        assert len(chunks) == 1
        assert chunks[0].content == "hello world"
        assert chunks[0].id == "doc_0"
        assert chunks[0].index == 0
        assert chunks[0].document_id == "doc"

    def test_exact_multiple_of_chunk_size(self) -> None:
        text = "A" * 500 + "B" * 500
        chunks = TextChunker(chunk_size=500).chunk("doc", text)
        assert [c.content for c in chunks] == ["A" * 500, "B" * 500]
        assert [c.id for c in chunks] == ["doc_0", "doc_1"]

    def test_last_chunk_may_be_shorter(self) -> None:
        chunks = TextChunker(chunk_size=4).chunk("d", "abcdefghij")
        assert [c.content for c in chunks] == ["abcd", "efgh", "ij"]

    def test_overlap_windows(self) -> None:
        chunks = TextChunker(chunk_size=5, overlap=2).chunk("d", "abcdefghij")
        assert [c.content for c in chunks] == ["abcde", "defgh", "ghij"]

    def test_indices_are_contiguous(self) -> None:
        chunks = TextChunker(chunk_size=7, overlap=3).chunk("d", "x" * 100)
        assert [c.index for c in chunks] == list(range(len(chunks)))

    def test_chunk_text_is_not_stripped(self) -> None:
        chunks = TextChunker(chunk_size=3).chunk("d", "ab  cd")
        assert [c.content for c in chunks] == ["ab ", " cd"]


class TestReconstruction:
    @pytest.mark.parametrize(
        ("size", "overlap"),
        [(500, 0), (10, 0), (10, 3), (7, 6), (1, 0)],
    )
    def test_reconstructs_original_text(self, size: int, overlap: int) -> None:
        text = "The quick brown fox jumps over the lazy dog. " * 13
        chunker = TextChunker(chunk_size=size, overlap=overlap)
        chunks = chunker.chunk("doc", text)
        assert chunker.reconstruct(chunks) == text

    def test_reconstruct_ignores_input_order(self) -> None:
        chunker = TextChunker(chunk_size=4, overlap=1)
        chunks = chunker.chunk("d", "abcdefghijk")
        assert chunker.reconstruct(list(reversed(chunks))) == "abcdefghijk"

    def test_reconstruct_empty(self) -> None:
        assert TextChunker().reconstruct([]) == ""


class TestDeterminism:
    def test_same_input_same_output(self) -> None:
        chunker = TextChunker(chunk_size=16, overlap=4)
        text = "deterministic chunking " * 20
        assert chunker.chunk("doc", text) == chunker.chunk("doc", text)


class TestConfiguration:
    def test_defaults(self) -> None:
        chunker = TextChunker()
        assert chunker.chunk_size == 500
        assert chunker.overlap == 0

    @pytest.mark.parametrize(
        ("size", "overlap"),
        [(0, 0), (-1, 0), (10, -1), (10, 10), (10, 11)],
    )
    def test_invalid_parameters_rejected(self, size: int, overlap: int) -> None:
        with pytest.raises(ConfigurationError):
            TextChunker(chunk_size=size, overlap=overlap)
