"""Query service: retrieval-augmented answering with history logging."""

import json
import time
from datetime import datetime

from services.query.RetrievalService import RetrievalService
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.query import ChunkReference, QueryHistory, QueryResult, RetrievalResult
from shared.store.MetaStoreInterface import MetaStoreInterface


class QueryService:
    """Handles questions: retrieve -> generate -> record history."""

    def __init__(
        self,
        helper_config: HelperConfig,
        meta_store: MetaStoreInterface,
        retrieval_service: RetrievalService,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._meta_store = meta_store
        self._retrieval_service = retrieval_service
        self._llm_client = llm_client

    ##########################################
    ############### CORE #####################
    ##########################################

    async def do_query(self, query: str, top_k: int | None = None) -> QueryResult:
        """Answer a question from the indexed documents.

        Args:
            query (str): The question. A blank question returns an empty result
                without calling any backend and without a history entry.
            top_k (int | None): Number of chunks to retrieve, RETRIEVAL_TOP_K when not positive.

        Returns:
            QueryResult: Answer, references in ranking order and elapsed milliseconds.

        Raises:
            ExternalServiceError: If embedding, search or generation fail.
        """
        started = time.perf_counter()
        if query is None or not query.strip():
            return QueryResult(query=query or "", answer="", references=[], response_time_ms=0)

        effective_top_k = self._retrieval_service.resolve_top_k(top_k)
        self.logging.info("Query received: '%s' (top_k=%d)", query[:80], effective_top_k)

        results = await self._retrieval_service.do_retrieve(query, effective_top_k)
        answer = await self._llm_client.do_generate_answer(query, [result.chunk.content for result in results])
        references = self._build_references(results)
        response_time_ms = int((time.perf_counter() - started) * 1000)

        await self._save_history(query, answer, references, response_time_ms)

        self.logging.info(
            "Answered query with %d reference(s) in %d ms.", len(references), response_time_ms
        )
        return QueryResult(
            query=query,
            answer=answer,
            references=references,
            response_time_ms=response_time_ms,
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_references(self, results: list[RetrievalResult]) -> list[ChunkReference]:
        return [
            ChunkReference(
                document_id=result.chunk.document_id,
                document_name=result.document_name,
                content=result.chunk.content,
                score=result.score,
            )
            for result in results
        ]

    async def _save_history(
        self,
        query: str,
        answer: str,
        references: list[ChunkReference],
        response_time_ms: int,
    ) -> None:
        """Persist the query. Failures are logged and never reach the caller."""
        try:
            history = QueryHistory(
                query_text=query,
                answer=answer,
                retrieved_chunks=json.dumps([reference.model_dump() for reference in references], ensure_ascii=False),
                query_time=datetime.now(),
                response_time_ms=response_time_ms,
            )
            await self._meta_store.do_insert_history(history)
        except Exception as exc:
            self.logging.error("Could not save query history: %s", exc)
