"""VectorPoint model: metadata stored alongside each chunk vector in a RAG backend."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Payload stored alongside each chunk vector in a RAG backend.

    The chunk text is duplicated here so search hits stay readable without the
    metadata store. The metadata store stays authoritative for the content
    returned to callers.

    Attributes:
        document_id:   Id of the owning document in the metadata store.
        chunk_index:   Zero-based position of this chunk within the document.
        content:       Raw text content of this chunk.
        document_name: Original file name of the owning document.
    """

    document_id: int
    chunk_index: int
    content: str
    document_name: str | None = None
