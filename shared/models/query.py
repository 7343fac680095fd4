"""Pydantic models for the query pipeline."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from shared.models.document import DocumentChunk


class RetrievalResult(BaseModel):
    """A stored chunk matched by a similarity search.

    Attributes:
        chunk:         The chunk record hydrated from the metadata store.
        score:         Similarity score reported by the vector store, higher is more relevant.
        document_name: File name of the source document as stored in the vector payload.
    """

    chunk: DocumentChunk
    score: float
    document_name: str | None = None


class ChunkReference(BaseModel):
    """Source reference returned alongside a generated answer."""

    document_id: int
    document_name: str | None = None
    content: str
    score: float


class QueryResult(BaseModel):
    query: str
    answer: str
    references: list[ChunkReference] = []
    response_time_ms: int = 0


class QueryHistory(BaseModel):
    """One answered query.

    retrieved_chunks holds the references as a JSON encoded list of
    {document_id, document_name, content, score} objects.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    query_text: str
    answer: str | None = None
    retrieved_chunks: str | None = None
    query_time: datetime | None = None
    response_time_ms: int | None = None
