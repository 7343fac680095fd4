"""Sliding-window text chunking.

Text is cut into windows of chunk_size characters. Each window starts
chunk_size - overlap characters after the previous one, so consecutive chunks
share overlap characters. The last chunk may be shorter.
"""

from shared.exceptions.errors import InvalidArgumentError

SUPPORTED_MIME_TYPES = frozenset({
    "application/pdf",
    "text/plain",
    "text/markdown",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
})

EXTENSION_MIME_TYPES = {
    "pdf": "application/pdf",
    "txt": "text/plain",
    "md": "text/markdown",
    "markdown": "text/markdown",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "doc": "application/msword",
}


class Chunker:
    """Stateless splitter, safe to share between concurrent ingestion jobs."""

    def split_text(self, text: str | None, chunk_size: int, overlap: int) -> list[str]:
        """Split text into overlapping chunks.

        Args:
            text (str | None): The extracted document text.
            chunk_size (int): Maximum characters per chunk, must be > 0.
            overlap (int): Characters shared by consecutive chunks, 0 <= overlap < chunk_size.

        Returns:
            list[str]: Ordered chunks. Empty for None, empty or whitespace-only text.

        Raises:
            InvalidArgumentError: If chunk_size or overlap are out of range.
        """
        if text is None or not text.strip():
            return []
        if chunk_size <= 0:
            raise InvalidArgumentError(f"chunk_size must be > 0, got {chunk_size}.")
        if overlap < 0:
            raise InvalidArgumentError(f"overlap must be >= 0, got {overlap}.")
        if overlap >= chunk_size:
            raise InvalidArgumentError(f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size}).")

        chunks: list[str] = []
        step = chunk_size - overlap
        start = 0
        length = len(text)
        while start < length:
            chunks.append(text[start:min(start + chunk_size, length)])
            start += step
        return chunks

    def is_supported(self, mime_type: str | None) -> bool:
        """Whether documents of this MIME type can be ingested (case-insensitive)."""
        if mime_type is None or not mime_type.strip():
            return False
        return mime_type.strip().lower() in SUPPORTED_MIME_TYPES

    def mime_type_for_extension(self, extension: str | None) -> str | None:
        """Map a file extension (with or without dot) to its MIME type."""
        if not extension:
            return None
        return EXTENSION_MIME_TYPES.get(extension.strip().lstrip(".").lower())
