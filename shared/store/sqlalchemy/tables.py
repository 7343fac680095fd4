"""ORM tables of the metadata store."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, BigInteger
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    file_type = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)
    status = Column(String(20), nullable=False, index=True)
    upload_time = Column(DateTime, nullable=False, default=datetime.now, index=True)
    process_time = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    chunk_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    chunks = relationship(
        "DocumentChunkRow",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DocumentChunkRow(Base):
    __tablename__ = "document_chunks"
    __table_args__ = (
        Index("ix_document_chunks_document_id_chunk_index", "document_id", "chunk_index"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    vector_id = Column(String(64), nullable=False, unique=True, index=True)
    char_count = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    document = relationship("DocumentRow", back_populates="chunks")


class QueryHistoryRow(Base):
    __tablename__ = "query_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    query_text = Column(Text, nullable=False)
    answer = Column(Text, nullable=True)
    retrieved_chunks = Column(Text, nullable=True)
    query_time = Column(DateTime, nullable=False, default=datetime.now, index=True)
    response_time_ms = Column(Integer, nullable=True)
