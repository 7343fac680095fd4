"""Tests for shared/store/sqlalchemy/MetaStoreSqlalchemy.py"""

from datetime import datetime, timedelta

import pytest

from shared.exceptions.errors import NotFoundError
from shared.models.document import Document, DocumentChunk, DocumentStatus
from shared.models.query import QueryHistory
from shared.store.MetaStoreManager import MetaStoreManager
from shared.store.sqlalchemy.MetaStoreSqlalchemy import MetaStoreSqlalchemy


def new_document(name: str = "a.txt", upload_time: datetime | None = None) -> Document:
    return Document(
        file_name=name,
        file_size=10,
        file_type="text/plain",
        file_path=f"/tmp/{name}",
        status=DocumentStatus.PROCESSING,
        upload_time=upload_time,
    )


def chunks_for(document_id: int, count: int) -> list[DocumentChunk]:
    return [
        DocumentChunk(
            document_id=document_id,
            chunk_index=index,
            content=f"chunk {index}",
            vector_id=f"vec-{document_id}-{index}",
            char_count=7,
        )
        for index in range(count)
    ]


class TestDocuments:
    async def test_create_and_get(self, meta_store):
        created = await meta_store.do_create_document(new_document())
        assert created.id is not None
        assert created.upload_time is not None
        assert created.status == DocumentStatus.PROCESSING
        assert created.chunk_count == 0

        loaded = await meta_store.do_get_document(created.id)
        assert loaded == created

    async def test_get_missing(self, meta_store):
        assert await meta_store.do_get_document(999) is None

    async def test_update(self, meta_store):
        created = await meta_store.do_create_document(new_document())
        created.status = DocumentStatus.COMPLETED
        created.chunk_count = 3
        created.process_time = datetime.now()
        updated = await meta_store.do_update_document(created)
        assert updated.status == DocumentStatus.COMPLETED
        assert updated.chunk_count == 3
        assert (await meta_store.do_get_document(created.id)).process_time is not None

    async def test_update_missing(self, meta_store):
        document = new_document()
        document.id = 12345
        with pytest.raises(NotFoundError):
            await meta_store.do_update_document(document)

    async def test_list_is_newest_first_and_paged(self, meta_store):
        base = datetime(2024, 1, 1, 12, 0, 0)
        for offset, name in enumerate(["old.txt", "mid.txt", "new.txt"]):
            await meta_store.do_create_document(new_document(name, upload_time=base + timedelta(minutes=offset)))

        first = await meta_store.do_list_documents(page=1, size=2)
        assert first.total == 3
        assert first.page == 1
        assert first.size == 2
        assert [doc.file_name for doc in first.records] == ["new.txt", "mid.txt"]

        second = await meta_store.do_list_documents(page=2, size=2)
        assert [doc.file_name for doc in second.records] == ["old.txt"]

        beyond = await meta_store.do_list_documents(page=5, size=2)
        assert beyond.total == 3
        assert beyond.records == []

    async def test_delete_removes_chunks(self, meta_store):
        created = await meta_store.do_create_document(new_document())
        await meta_store.do_insert_chunks(chunks_for(created.id, 2))

        assert await meta_store.do_delete_document(created.id) is True
        assert await meta_store.do_get_document(created.id) is None
        assert await meta_store.do_get_chunks_by_document(created.id) == []
        assert await meta_store.do_get_chunk_by_vector_id(f"vec-{created.id}-0") is None
        assert await meta_store.do_delete_document(created.id) is False


class TestChunks:
    async def test_chunks_are_ordered_by_index(self, meta_store):
        created = await meta_store.do_create_document(new_document())
        chunks = chunks_for(created.id, 3)
        await meta_store.do_insert_chunks(list(reversed(chunks)))

        stored = await meta_store.do_get_chunks_by_document(created.id)
        assert [chunk.chunk_index for chunk in stored] == [0, 1, 2]
        assert all(chunk.id is not None for chunk in stored)

    async def test_lookup_by_vector_id(self, meta_store):
        created = await meta_store.do_create_document(new_document())
        await meta_store.do_insert_chunks(chunks_for(created.id, 2))

        chunk = await meta_store.do_get_chunk_by_vector_id(f"vec-{created.id}-1")
        assert chunk.chunk_index == 1
        assert chunk.document_id == created.id
        assert await meta_store.do_get_chunk_by_vector_id("unknown") is None

    async def test_insert_is_atomic(self, meta_store):
        created = await meta_store.do_create_document(new_document())
        chunks = chunks_for(created.id, 2)
        # duplicate vector id violates the unique constraint
        chunks[1].vector_id = chunks[0].vector_id
        with pytest.raises(Exception):
            await meta_store.do_insert_chunks(chunks)
        assert await meta_store.do_get_chunks_by_document(created.id) == []

    async def test_delete_by_document(self, meta_store):
        first = await meta_store.do_create_document(new_document("first.txt"))
        second = await meta_store.do_create_document(new_document("second.txt"))
        await meta_store.do_insert_chunks(chunks_for(first.id, 3))
        await meta_store.do_insert_chunks(chunks_for(second.id, 1))

        assert await meta_store.do_delete_chunks_by_document(first.id) == 3
        assert await meta_store.do_get_chunks_by_document(first.id) == []
        assert len(await meta_store.do_get_chunks_by_document(second.id)) == 1

    async def test_insert_nothing(self, meta_store):
        await meta_store.do_insert_chunks([])


class TestHistory:
    async def test_insert_and_list(self, meta_store):
        base = datetime(2024, 5, 1, 8, 0, 0)
        for offset in range(3):
            await meta_store.do_insert_history(
                QueryHistory(
                    query_text=f"question {offset}",
                    answer="answer",
                    retrieved_chunks="[]",
                    query_time=base + timedelta(seconds=offset),
                    response_time_ms=12,
                )
            )
        page = await meta_store.do_list_history(page=1, size=2)
        assert page.total == 3
        assert [entry.query_text for entry in page.records] == ["question 2", "question 1"]

    async def test_query_time_defaults_to_now(self, meta_store):
        stored = await meta_store.do_insert_history(QueryHistory(query_text="q"))
        assert stored.id is not None
        assert stored.query_time is not None


class TestLifecycle:
    def test_manager_builds_sqlalchemy_store(self, helper_config):
        assert isinstance(MetaStoreManager(helper_config=helper_config).get_store(), MetaStoreSqlalchemy)

    async def test_use_before_boot(self, helper_config):
        store = MetaStoreSqlalchemy(helper_config=helper_config)
        with pytest.raises(RuntimeError):
            await store.do_get_document(1)

    async def test_creates_database_directory(self, helper_config, monkeypatch, tmp_path):
        monkeypatch.setenv("META_SQLALCHEMY_URL", f"sqlite:///{tmp_path / 'nested' / 'dir' / 'rag.db'}")
        store = MetaStoreSqlalchemy(helper_config=helper_config)
        await store.boot()
        try:
            created = await store.do_create_document(new_document())
            assert created.id == 1
        finally:
            await store.close()
        assert (tmp_path / "nested" / "dir" / "rag.db").exists()
