"""Retrieval service: query embedding, similarity search and hydration of hits."""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.query import RetrievalResult
from shared.store.MetaStoreInterface import MetaStoreInterface


class RetrievalService:
    """Finds the stored chunks most similar to a query."""

    def __init__(
        self,
        helper_config: HelperConfig,
        meta_store: MetaStoreInterface,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._meta_store = meta_store
        self._embed_client = embed_client
        self._rag_client = rag_client
        self.default_top_k = helper_config.get_int_val("RETRIEVAL_TOP_K", default=5, minimum=1)

    def resolve_top_k(self, top_k: int | None) -> int:
        """Caller value if positive, otherwise RETRIEVAL_TOP_K."""
        if top_k is not None and top_k > 0:
            return top_k
        return self.default_top_k

    async def do_retrieve(self, query: str, top_k: int | None = None) -> list[RetrievalResult]:
        """Retrieve the best matching chunks for a query.

        Hits whose chunk record is missing in the metadata store (e.g. the document
        was deleted or is still being written) are dropped with a warning.

        Args:
            query (str): The user query. Blank queries yield an empty list without any backend call.
            top_k (int | None): Maximum number of results, RETRIEVAL_TOP_K when not positive.

        Returns:
            list[RetrievalResult]: At most top_k results ordered by score, best first.

        Raises:
            ExternalServiceError: If embedding or search fails.
        """
        if query is None or not query.strip():
            return []
        effective_top_k = self.resolve_top_k(top_k)

        query_vector = await self._embed_client.do_embed(query)
        hits = await self._rag_client.do_search(query_vector, effective_top_k)

        results: list[RetrievalResult] = []
        for hit in hits:
            chunk = await self._meta_store.do_get_chunk_by_vector_id(hit.id)
            if chunk is None:
                self.logging.warning("No chunk record for vector id=%s (score %.4f). Dropping hit.", hit.id, hit.score)
                continue
            results.append(
                RetrievalResult(
                    chunk=chunk,
                    score=hit.score,
                    document_name=hit.payload.get("document_name"),
                )
            )

        # stable, equal scores keep the backend order
        results.sort(key=lambda result: result.score, reverse=True)
        self.logging.info(
            "Retrieved %d of %d hit(s) for query '%s' (top_k=%d).",
            len(results), len(hits), query[:80], effective_top_k,
        )
        return results
