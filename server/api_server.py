"""FastAPI application entry point for the document RAG bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.extract.TextExtractor import TextExtractor
from shared.store.MetaStoreInterface import MetaStoreInterface
from shared.store.MetaStoreManager import MetaStoreManager
from services.bootstrap.CollectionInitializer import CollectionInitializer
from services.documents.DocumentService import DocumentService
from services.ingestion.Chunker import Chunker
from services.ingestion.IngestionService import IngestionService
from services.ingestion.IngestionWorkerPool import IngestionWorkerPool
from services.query.QueryService import QueryService
from services.query.RetrievalService import RetrievalService
from server.core.exception_handlers import register_exception_handlers
from server.models.responses import HealthResponse, IngestionPoolStatus
from server.routers.DocumentRouter import router as document_router
from server.routers.QueryRouter import router as query_router

app_version = os.getenv("APP_VERSION", "unknown")


async def wire_services(
    app: FastAPI,
    helper_config: HelperConfig,
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
    rag_client: RAGClientInterface,
    meta_store: MetaStoreInterface,
) -> None:
    """Build the services on top of booted clients, start the ingestion pool and
    expose everything on app.state."""
    chunker = Chunker()
    ingestion_service = IngestionService(
        helper_config=helper_config,
        meta_store=meta_store,
        embed_client=embed_client,
        rag_client=rag_client,
        extractor=TextExtractor(logger=helper_config.get_logger()),
        chunker=chunker,
    )
    worker_pool = IngestionWorkerPool(helper_config=helper_config, handler=ingestion_service.do_process_document)
    await worker_pool.start()

    retrieval_service = RetrievalService(
        helper_config=helper_config,
        meta_store=meta_store,
        embed_client=embed_client,
        rag_client=rag_client,
    )

    app.state.helper_config = helper_config
    app.state.embed_client = embed_client
    app.state.llm_client = llm_client
    app.state.rag_client = rag_client
    app.state.meta_store = meta_store
    app.state.worker_pool = worker_pool
    app.state.ingestion_service = ingestion_service
    app.state.query_service = QueryService(
        helper_config=helper_config,
        meta_store=meta_store,
        retrieval_service=retrieval_service,
        llm_client=llm_client,
    )
    app.state.document_service = DocumentService(
        helper_config=helper_config,
        meta_store=meta_store,
        rag_client=rag_client,
        worker_pool=worker_pool,
        chunker=chunker,
    )


async def shutdown_services(app: FastAPI) -> None:
    """Drain the ingestion pool, then close the clients and the metadata store."""
    logging = app.state.helper_config.get_logger()
    worker_pool: IngestionWorkerPool | None = getattr(app.state, "worker_pool", None)
    if worker_pool is not None:
        await worker_pool.stop()

    logging.info("Shutting down, closing all clients...")
    for client in [app.state.embed_client, app.state.llm_client, app.state.rag_client]:
        await client.close()
    await app.state.meta_store.close()
    logging.info("All clients closed.")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    logging = setup_logging()
    app.state.logging = logging
    helper_config = HelperConfig(logger=logging)

    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    meta_store = MetaStoreManager(helper_config=helper_config).get_store()

    logging.info("Booting all clients...")
    for client in [embed_client, llm_client, rag_client]:
        await client.boot()
    await meta_store.boot()
    logging.info("All clients booted successfully.", color="green")

    await check_connections(helper_config, embed_client, llm_client, rag_client)
    await CollectionInitializer(
        helper_config=helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
    ).do_initialize()

    await wire_services(app, helper_config, embed_client, llm_client, rag_client, meta_store)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    await shutdown_services(app)


def create_app(lifespan_handler: Callable = lifespan) -> FastAPI:
    """Build the FastAPI application.

    Args:
        lifespan_handler: Async context manager that populates app.state.
    """
    app = FastAPI(
        title="doc_rag_bridge",
        description=(
            "Retrieval-augmented question answering over uploaded documents. "
            "Documents uploaded via POST /api/documents are chunked, embedded and indexed "
            "into a vector database in the background; POST /api/query answers questions "
            "from the indexed chunks with source references."
        ),
        version=app_version,
        lifespan=lifespan_handler,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(document_router)
    app.include_router(query_router)

    @app.get("/health", tags=["health"])
    async def health(request: Request) -> HealthResponse:
        worker_pool: IngestionWorkerPool = request.app.state.worker_pool
        return HealthResponse(
            status="ok",
            version=app_version,
            ingestion=IngestionPoolStatus(
                running=worker_pool.is_running,
                active_workers=worker_pool.get_active_workers(),
                queued=worker_pool.get_queue_size(),
            ),
        )

    return app


async def check_connections(
    helper_config: HelperConfig,
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
    rag_client: RAGClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Embedding and LLM failures are logged as warnings. An unreachable vector
    store aborts the startup.

    Raises:
        Exception: If the vector store is not reachable.
    """
    logging = helper_config.get_logger()
    clients: list[ClientInterface] = [embed_client, llm_client]
    for client in clients:
        try:
            result: httpx.Response = await client.do_healthcheck()
        except httpx.HTTPError as exc:
            logging.warning("%s client '%s' is not reachable: %s", client.get_client_type().upper(), client.get_engine_name(), exc)
            continue
        if not result.is_success:
            logging.warning(
                "%s client '%s' healthcheck returned status %d. Requests may fail.",
                client.get_client_type().upper(), client.get_engine_name(), result.status_code,
            )

    result = await rag_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"RAG client '{rag_client.get_engine_name()}' is not reachable "
            f"(status {result.status_code}). Cannot ingest or serve queries."
        )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("API_SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("API_SERVER_PORT", "8000")),
    )
