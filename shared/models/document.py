"""Pydantic models for stored documents and their chunks.

Hierarchy:
  DocumentStatus - lifecycle state of an uploaded document.
  Document       - one uploaded file and its processing outcome.
  DocumentChunk  - one text segment of a document, linked to a vector point.
  DocumentDetail - a document together with its chunks.
  PageResult     - generic page wrapper used by list operations.
"""

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class DocumentStatus(str, Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Document(BaseModel):
    """An uploaded document.

    Created with status PROCESSING and moved exactly once to COMPLETED or FAILED
    by the ingestion pipeline. process_time is set on that transition,
    error_message only when the document failed.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    file_name: str
    file_size: int
    file_type: str
    file_path: str
    status: DocumentStatus = DocumentStatus.PROCESSING
    upload_time: datetime | None = None
    process_time: datetime | None = None
    error_message: str | None = None
    chunk_count: int = 0


class DocumentChunk(BaseModel):
    """A text segment of a document.

    chunk_index values of one document are contiguous from 0 and follow the
    order produced by the chunker. vector_id is the id of the matching point
    in the vector store.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    document_id: int
    chunk_index: int
    content: str
    vector_id: str
    char_count: int
    created_at: datetime | None = None


class PageResult(BaseModel, Generic[T]):
    total: int
    page: int
    size: int
    records: list[T]


class DocumentDetail(Document):
    """A document together with its chunks ordered by chunk_index."""

    chunks: list[DocumentChunk] = []
