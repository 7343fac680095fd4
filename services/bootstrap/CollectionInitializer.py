"""Makes sure the vector collection exists before the first upload or query."""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig


class CollectionInitializer:
    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client

    async def do_initialize(self) -> bool:
        """Create the collection with the embedding dimension and distance if it is missing.

        Returns:
            bool: True if the collection was created, False if it already existed.

        Raises:
            ExternalServiceError: If the vector store cannot be reached or refuses the creation.
        """
        collection = self._rag_client.get_collection_name()
        created = False
        if await self._rag_client.do_existence_check():
            description = await self._rag_client.do_describe_collection()
            self.logging.info(
                "Collection '%s' exists (status=%s, points=%s).",
                collection, description.get("status", "unknown"), description.get("points_count", "unknown"),
            )
            self._warn_on_dimension_mismatch(description)
        else:
            self.logging.info(
                "Collection '%s' not found. Creating it (size=%d, distance=%s)...",
                collection, self._embed_client.embed_dimension, self._embed_client.embed_distance,
            )
            await self._rag_client.do_create_collection(
                vector_size=self._embed_client.embed_dimension,
                distance=self._embed_client.embed_distance,
            )
            created = True

        collections = await self._rag_client.do_list_collections()
        self.logging.info("Vector store holds %d collection(s): %s", len(collections), ", ".join(collections))
        return created

    def _warn_on_dimension_mismatch(self, description: dict) -> None:
        vectors = ((description.get("config") or {}).get("params") or {}).get("vectors") or {}
        size = vectors.get("size") if isinstance(vectors, dict) else None
        if size is not None and size != self._embed_client.embed_dimension:
            self.logging.warning(
                "Collection '%s' stores vectors of size %s but EMBED_DIMENSION is %d. Upserts will be rejected.",
                self._rag_client.get_collection_name(), size, self._embed_client.embed_dimension,
            )
