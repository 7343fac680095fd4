"""
Pytest configuration for the document RAG bridge test suite.

Every backend is faked through httpx.MockTransport, the metadata store runs
on a temporary SQLite file.
"""
import logging
from pathlib import Path

import httpx
import pytest

from fakes import DIMENSION, FakeChatProvider, FakeEmbeddingProvider, FakeQdrant
from services.ingestion.Chunker import Chunker
from services.ingestion.IngestionService import IngestionService
from services.query.QueryService import QueryService
from services.query.RetrievalService import RetrievalService
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.extract.TextExtractor import TextExtractor
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.document import Document, DocumentStatus
from shared.store.sqlalchemy.MetaStoreSqlalchemy import MetaStoreSqlalchemy

pytest_plugins = ["pytest_asyncio"]

COLLECTION = "test_chunks"


@pytest.fixture(autouse=True)
def env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated configuration for every test."""
    values = {
        "ROOT_DIR": str(tmp_path),
        "EMBED_ENGINE": "openai",
        "EMBED_OPENAI_BASE_URL": "http://embed.test/api/v1",
        "EMBED_OPENAI_API_KEY": "sk-embed-secret",
        "EMBED_MODEL": "test/embedding-model",
        "EMBED_DIMENSION": str(DIMENSION),
        "EMBED_MAX_RETRIES": "2",
        "EMBED_RETRY_BASE_DELAY": "0",
        "LLM_ENGINE": "openai",
        "LLM_OPENAI_BASE_URL": "http://llm.test/api/v1",
        "LLM_OPENAI_API_KEY": "sk-llm-secret",
        "LLM_CHAT_MODEL": "test/chat-model",
        "LLM_MAX_RETRIES": "2",
        "LLM_RETRY_BASE_DELAY": "0",
        "RAG_ENGINE": "qdrant",
        "RAG_QDRANT_BASE_URL": "http://qdrant.test",
        "RAG_QDRANT_COLLECTION": COLLECTION,
        "RAG_RETRY_BASE_DELAY": "0",
        "META_SQLALCHEMY_URL": f"sqlite:///{tmp_path / 'meta.db'}",
        "DOCUMENT_UPLOAD_DIR": str(tmp_path / "uploads"),
        "DOCUMENT_CHUNK_SIZE": "40",
        "DOCUMENT_CHUNK_OVERLAP": "10",
        "RETRIEVAL_TOP_K": "3",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    for key in ("RAG_MAX_RETRIES", "LLM_SYSTEM_PROMPT", "DOCUMENT_MAX_FILE_SIZE", "DOCUMENT_SUPPORTED_FORMATS"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("tests")))


@pytest.fixture
def fake_embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def fake_chat() -> FakeChatProvider:
    return FakeChatProvider()


@pytest.fixture
def fake_qdrant() -> FakeQdrant:
    return FakeQdrant(collection=COLLECTION)


@pytest.fixture
async def embed_client(helper_config, fake_embedder):
    client = EmbedClientOpenai(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(fake_embedder))
    yield client
    await client.close()


@pytest.fixture
async def llm_client(helper_config, fake_chat):
    client = LLMClientOpenai(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(fake_chat))
    yield client
    await client.close()


@pytest.fixture
async def rag_client(helper_config, fake_qdrant):
    client = RAGClientQdrant(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(fake_qdrant))
    yield client
    await client.close()


@pytest.fixture
async def meta_store(helper_config):
    store = MetaStoreSqlalchemy(helper_config=helper_config)
    await store.boot()
    yield store
    await store.close()


@pytest.fixture
def ingestion_service(helper_config, meta_store, embed_client, rag_client) -> IngestionService:
    return IngestionService(
        helper_config=helper_config,
        meta_store=meta_store,
        embed_client=embed_client,
        rag_client=rag_client,
        extractor=TextExtractor(logger=helper_config.get_logger()),
        chunker=Chunker(),
    )


@pytest.fixture
def retrieval_service(helper_config, meta_store, embed_client, rag_client) -> RetrievalService:
    return RetrievalService(
        helper_config=helper_config,
        meta_store=meta_store,
        embed_client=embed_client,
        rag_client=rag_client,
    )


@pytest.fixture
def query_service(helper_config, meta_store, retrieval_service, llm_client) -> QueryService:
    return QueryService(
        helper_config=helper_config,
        meta_store=meta_store,
        retrieval_service=retrieval_service,
        llm_client=llm_client,
    )


@pytest.fixture
def make_document(meta_store, env: Path):
    """Write a text file to the upload dir and register it as PROCESSING document."""

    async def _make(text: str, file_name: str = "notes.txt", file_type: str = "text/plain") -> Document:
        upload_dir = env / "uploads"
        upload_dir.mkdir(parents=True, exist_ok=True)
        path = upload_dir / file_name
        path.write_text(text, encoding="utf-8")
        return await meta_store.do_create_document(
            Document(
                file_name=file_name,
                file_size=path.stat().st_size,
                file_type=file_type,
                file_path=str(path),
                status=DocumentStatus.PROCESSING,
            )
        )

    return _make
