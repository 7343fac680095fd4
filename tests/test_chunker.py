"""Tests for services/ingestion/Chunker.py"""

import string

import pytest

from services.ingestion.Chunker import Chunker
from shared.exceptions.errors import InvalidArgumentError


@pytest.fixture
def chunker() -> Chunker:
    return Chunker()


class TestSplitText:
    """Sliding window splitting."""

    def test_alphabet_with_overlap(self, chunker):
        chunks = chunker.split_text(string.ascii_uppercase, chunk_size=10, overlap=2)
        assert chunks == ["ABCDEFGHIJ", "IJKLMNOPQR", "QRSTUVWXYZ", "YZ"]
        assert [len(chunk) for chunk in chunks] == [10, 10, 10, 2]

    def test_long_text_lengths(self, chunker):
        text = "x" * 35
        chunks = chunker.split_text(text, chunk_size=10, overlap=0)
        assert [len(chunk) for chunk in chunks] == [10, 10, 10, 5]

    def test_consecutive_chunks_share_overlap(self, chunker):
        text = "The quick brown fox jumps over the lazy dog. " * 20
        chunks = chunker.split_text(text, chunk_size=50, overlap=12)
        for previous, current in zip(chunks, chunks[1:]):
            assert previous[-12:] == current[:12]

    def test_chunks_reassemble_original(self, chunker):
        text = "Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 7
        chunk_size, overlap = 40, 15
        chunks = chunker.split_text(text, chunk_size=chunk_size, overlap=overlap)
        rebuilt = chunks[0] + "".join(chunk[overlap:] for chunk in chunks[1:])
        assert rebuilt.startswith(text)
        assert all(len(chunk) <= chunk_size for chunk in chunks)

    def test_short_text_single_chunk(self, chunker):
        assert chunker.split_text("hello", chunk_size=800, overlap=150) == ["hello"]

    def test_text_of_exact_chunk_size(self, chunker):
        assert chunker.split_text("abcd", chunk_size=4, overlap=0) == ["abcd"]

    @pytest.mark.parametrize("text", [None, "", "   ", "\n\t "])
    def test_blank_text_yields_no_chunks(self, chunker, text):
        assert chunker.split_text(text, chunk_size=10, overlap=2) == []

    def test_blank_text_ignores_invalid_parameters(self, chunker):
        assert chunker.split_text("  ", chunk_size=0, overlap=5) == []

    @pytest.mark.parametrize(
        "chunk_size,overlap",
        [(0, 0), (-5, 0), (10, -1), (10, 10), (10, 11)],
    )
    def test_invalid_parameters(self, chunker, chunk_size, overlap):
        with pytest.raises(InvalidArgumentError):
            chunker.split_text("some text", chunk_size=chunk_size, overlap=overlap)


class TestSupportedTypes:
    """MIME type checks."""

    @pytest.mark.parametrize(
        "mime_type",
        [
            "application/pdf",
            "text/plain",
            "text/markdown",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/msword",
            "TEXT/PLAIN",
        ],
    )
    def test_supported(self, chunker, mime_type):
        assert chunker.is_supported(mime_type) is True

    @pytest.mark.parametrize("mime_type", [None, "", "image/png", "application/zip"])
    def test_unsupported(self, chunker, mime_type):
        assert chunker.is_supported(mime_type) is False

    def test_extension_mapping(self, chunker):
        assert chunker.mime_type_for_extension("pdf") == "application/pdf"
        assert chunker.mime_type_for_extension(".MD") == "text/markdown"
        assert chunker.mime_type_for_extension("exe") is None
        assert chunker.mime_type_for_extension(None) is None
