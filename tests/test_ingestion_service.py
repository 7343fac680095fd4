"""Tests for services/ingestion/IngestionService.py"""

import os

import pytest

from fakes import embed_text
from services.ingestion.Chunker import Chunker
from services.ingestion.IngestionService import IngestionService
from shared.extract.TextExtractor import TextExtractor, normalize_whitespace
from shared.models.document import DocumentStatus

# 100 characters without surrounding whitespace, DOCUMENT_CHUNK_SIZE=40 and
# DOCUMENT_CHUNK_OVERLAP=10 give 4 chunks
TEXT = ("Retrieval augmented generation grounds answers in documents. " * 2)[:99] + "."


class TestHappyPath:
    async def test_document_is_indexed(self, ingestion_service, make_document, meta_store, fake_qdrant, fake_embedder):
        document = await make_document(TEXT)
        await ingestion_service.do_process_document(document.id)

        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.COMPLETED
        assert stored.chunk_count == 4
        assert stored.process_time is not None
        assert stored.error_message is None

        chunks = await meta_store.do_get_chunks_by_document(document.id)
        assert [chunk.chunk_index for chunk in chunks] == [0, 1, 2, 3]
        assert chunks[0].content == TEXT[:40]
        assert chunks[1].content == TEXT[30:70]
        assert [chunk.char_count for chunk in chunks] == [40, 40, 40, 10]
        assert len({chunk.vector_id for chunk in chunks}) == 4

        assert fake_embedder.embed_calls == 4
        assert set(fake_qdrant.points) == {chunk.vector_id for chunk in chunks}
        for chunk in chunks:
            stored_point = fake_qdrant.points[chunk.vector_id]
            assert stored_point["vector"] == embed_text(chunk.content)
            assert stored_point["payload"] == {
                "document_id": document.id,
                "chunk_index": chunk.chunk_index,
                "content": chunk.content,
                "document_name": "notes.txt",
            }

    async def test_whitespace_only_document(self, ingestion_service, make_document, meta_store, fake_qdrant, fake_embedder):
        document = await make_document("   \n\t  ")
        await ingestion_service.do_process_document(document.id)

        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.COMPLETED
        assert stored.chunk_count == 0
        assert fake_embedder.embed_calls == 0
        assert fake_qdrant.requests == []

    async def test_markdown_document(self, ingestion_service, make_document, meta_store):
        document = await make_document("# Heading\n\nShort body.", file_name="readme.md", file_type="text/markdown")
        await ingestion_service.do_process_document(document.id)
        chunks = await meta_store.do_get_chunks_by_document(document.id)
        assert [chunk.content for chunk in chunks] == ["# Heading Short body."]


class TestSkipped:
    async def test_unknown_document(self, ingestion_service, fake_embedder):
        await ingestion_service.do_process_document(4242)
        assert fake_embedder.embed_calls == 0

    async def test_already_completed(self, ingestion_service, make_document, meta_store, fake_embedder):
        document = await make_document(TEXT)
        document.status = DocumentStatus.COMPLETED
        await meta_store.do_update_document(document)

        await ingestion_service.do_process_document(document.id)
        assert fake_embedder.embed_calls == 0
        assert await meta_store.do_get_chunks_by_document(document.id) == []


class TestFailures:
    async def test_missing_file(self, ingestion_service, make_document, meta_store, fake_qdrant):
        document = await make_document(TEXT)
        os.remove(document.file_path)

        await ingestion_service.do_process_document(document.id)

        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert "not found" in stored.error_message
        assert stored.process_time is not None
        assert fake_qdrant.requests == []

    async def test_embedding_failure(self, ingestion_service, make_document, meta_store, fake_qdrant, fake_embedder):
        document = await make_document(TEXT)
        fake_embedder.fail_statuses = [401]

        await ingestion_service.do_process_document(document.id)

        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert "401" in stored.error_message
        assert stored.chunk_count == 0
        assert await meta_store.do_get_chunks_by_document(document.id) == []
        assert fake_qdrant.points == {}

    async def test_embedding_retries_exhausted(self, ingestion_service, make_document, meta_store, fake_embedder):
        document = await make_document(TEXT)
        fake_embedder.fail_statuses = [503] * 10

        await ingestion_service.do_process_document(document.id)

        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert "3 attempt" in stored.error_message

    async def test_vector_store_failure(self, ingestion_service, make_document, meta_store, fake_qdrant):
        document = await make_document(TEXT)
        fake_qdrant.fail_statuses = [500]

        await ingestion_service.do_process_document(document.id)

        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert await meta_store.do_get_chunks_by_document(document.id) == []

    async def test_chunk_persistence_failure_removes_vectors(
        self, ingestion_service, make_document, meta_store, fake_qdrant, monkeypatch
    ):
        document = await make_document(TEXT)

        async def broken_insert(chunks):
            raise RuntimeError("disk full")

        monkeypatch.setattr(meta_store, "do_insert_chunks", broken_insert)

        await ingestion_service.do_process_document(document.id)

        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert stored.error_message == "disk full"
        assert fake_qdrant.points == {}
        assert fake_qdrant.paths("POST")[-1] == "/collections/test_chunks/points/delete"

    async def test_legacy_doc_fails(self, ingestion_service, make_document, meta_store):
        document = await make_document("binary", file_name="old.doc", file_type="application/msword")
        await ingestion_service.do_process_document(document.id)
        stored = await meta_store.do_get_document(document.id)
        assert stored.status == DocumentStatus.FAILED
        assert "Legacy Word" in stored.error_message


class TestConfiguration:
    async def test_overlap_must_be_smaller_than_chunk_size(
        self, helper_config, meta_store, embed_client, rag_client, monkeypatch
    ):
        monkeypatch.setenv("DOCUMENT_CHUNK_SIZE", "10")
        monkeypatch.setenv("DOCUMENT_CHUNK_OVERLAP", "10")
        with pytest.raises(ValueError):
            IngestionService(
                helper_config=helper_config,
                meta_store=meta_store,
                embed_client=embed_client,
                rag_client=rag_client,
                extractor=TextExtractor(),
                chunker=Chunker(),
            )

    async def test_defaults(self, helper_config, meta_store, embed_client, rag_client, monkeypatch):
        monkeypatch.delenv("DOCUMENT_CHUNK_SIZE")
        monkeypatch.delenv("DOCUMENT_CHUNK_OVERLAP")
        service = IngestionService(
            helper_config=helper_config,
            meta_store=meta_store,
            embed_client=embed_client,
            rag_client=rag_client,
            extractor=TextExtractor(),
            chunker=Chunker(),
        )
        assert (service.chunk_size, service.chunk_overlap) == (800, 150)


class TestFixtureText:
    def test_text_survives_normalization(self):
        assert len(TEXT) == 100
        assert normalize_whitespace(TEXT) == TEXT
