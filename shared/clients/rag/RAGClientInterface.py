from abc import abstractmethod
from typing import Any
import json

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.exceptions.errors import InvalidArgumentError
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    def _get_default_max_retries(self) -> int:
        # vector store calls are attempted once unless RAG_MAX_RETRIES says otherwise
        return 0

    @abstractmethod
    def get_collection_name(self) -> str:
        """
        Returns the name of the collection all operations are scoped to.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert requests (e.g. "/collections/my_col/points").
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for similarity search requests (e.g. "/collections/my_col/points/search").
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points by id or filter (e.g. "/collections/my_col/points/delete").
        """
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """
        Returns the endpoint path for collection existence check requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_collection(self) -> str:
        """
        Returns the endpoint path for creating and describing the collection (e.g. "/collections/my_col").
        """
        pass

    @abstractmethod
    def _get_endpoint_collections(self) -> str:
        """
        Returns the endpoint path listing all collections (e.g. "/collections").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_upsert_payload(self, points: list[dict[str, Any]]) -> dict:
        """Builds the backend-specific request payload for an upsert.

        Args:
            points (list[dict]): Points as {"id": str, "vector": list[float], "payload": dict}.
        """
        pass

    @abstractmethod
    def get_search_payload(self, query_vector: list[float], top_k: int) -> dict:
        """Builds the backend-specific request payload for a similarity search.

        Args:
            query_vector (list[float]): The query embedding.
            top_k (int): Maximum number of hits.
        """
        pass

    @abstractmethod
    def get_delete_by_ids_payload(self, point_ids: list[str]) -> dict:
        """Builds the backend-specific request payload for an id-based delete."""
        pass

    @abstractmethod
    def get_delete_payload(self, key: str, value: Any) -> dict:
        """
        Builds the backend-specific request payload for a filter-based delete.

        Args:
            key (str): Payload field to match.
            value (Any): Value the field must equal.

        Returns:
            dict: The payload for the delete request.
        """
        pass

    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        """Builds the backend-specific request payload for collection creation."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        """
        Converts a raw search response into SearchHit objects, best match first.
        """
        pass

    @abstractmethod
    def extract_collection_exists(self, raw_response: dict) -> bool:
        pass

    @abstractmethod
    def extract_collection_names(self, raw_response: dict) -> list[str]:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_json_request(self, method: str, endpoint: str, body: dict | None = None, params: dict | None = None) -> dict:
        """Send one request with an optional JSON body and return the decoded response."""
        response = await self.do_request(
            method=method,
            content=json.dumps(body) if body is not None else None,
            endpoint=endpoint,
            params=params,
            additional_headers={"Content-Type": "application/json"} if body is not None else None,
            raise_on_error=True,
        )
        return self.parse_json(response)

    async def do_existence_check(self) -> bool:
        """Check if the configured collection exists in the rag backend.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        raw = await self.do_with_retry(
            lambda: self._do_json_request("GET", self._get_endpoint_check_collection_existence()),
            description="collection existence check",
        )
        return self.extract_collection_exists(raw)

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        """Create the configured collection.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.

        Raises:
            InvalidArgumentError: If vector_size is not positive.
            ExternalServiceError: If the backend rejects the request.
        """
        if vector_size <= 0:
            raise InvalidArgumentError("Vector size must be > 0.")
        await self.do_with_retry(
            lambda: self._do_json_request(
                "PUT",
                self._get_endpoint_collection(),
                body=self.get_create_collection_payload(vector_size, distance),
            ),
            description="collection creation",
        )
        self.logging.info(
            "Created collection '%s' (size=%d, distance=%s) in %s.",
            self.get_collection_name(), vector_size, distance, self.get_engine_name(),
        )

    async def do_describe_collection(self) -> dict:
        """Return the raw collection description reported by the backend."""
        raw = await self.do_with_retry(
            lambda: self._do_json_request("GET", self._get_endpoint_collection()),
            description="collection description",
        )
        return raw.get("result", raw)

    async def do_list_collections(self) -> list[str]:
        raw = await self.do_with_retry(
            lambda: self._do_json_request("GET", self._get_endpoint_collections()),
            description="collection listing",
        )
        return self.extract_collection_names(raw)

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        """Upsert points into the collection.
        Inserts new points or replaces existing ones if a point with the same ID already exists.

        Args:
            points (list[dict[str, Any]]): Points as {"id", "vector", "payload"}. An empty list is a no-op.

        Raises:
            ExternalServiceError: If the backend fails.
        """
        if not points:
            self.logging.debug("Upsert called without points. Nothing to do.")
            return
        await self.do_with_retry(
            lambda: self._do_json_request(
                "PUT",
                self._get_endpoint_points(),
                body=self.get_upsert_payload(points),
                params={"wait": "true"},
            ),
            description=f"upsert of {len(points)} point(s)",
        )
        self.logging.debug("Upserted %d point(s) into '%s'.", len(points), self.get_collection_name())

    async def do_search(self, query_vector: list[float], top_k: int) -> list[SearchHit]:
        """Similarity search over the collection.

        Args:
            query_vector (list[float]): The query embedding.
            top_k (int): Maximum number of hits, must be > 0.

        Returns:
            list[SearchHit]: At most top_k hits, best match first. May be empty.

        Raises:
            InvalidArgumentError: If the vector is empty or top_k is not positive.
            ExternalServiceError: If the backend fails.
        """
        if not query_vector:
            raise InvalidArgumentError("Query vector must not be empty.")
        if top_k <= 0:
            raise InvalidArgumentError("top_k must be > 0.")
        raw = await self.do_with_retry(
            lambda: self._do_json_request(
                "POST",
                self._get_endpoint_search(),
                body=self.get_search_payload(query_vector, top_k),
            ),
            description="similarity search",
        )
        hits = self.extract_search_hits(raw)
        self.logging.debug("Search in '%s' returned %d hit(s).", self.get_collection_name(), len(hits))
        return hits

    async def do_delete_points(self, point_ids: list[str]) -> None:
        """Delete points by id. Unknown ids are ignored by the backend."""
        if not point_ids:
            return
        await self.do_with_retry(
            lambda: self._do_json_request(
                "POST",
                self._get_endpoint_delete_points(),
                body=self.get_delete_by_ids_payload(point_ids),
                params={"wait": "true"},
            ),
            description=f"delete of {len(point_ids)} point(s)",
        )

    async def do_delete_point(self, point_id: str) -> None:
        await self.do_delete_points([point_id])

    async def do_delete_points_by_payload(self, key: str, value: Any) -> None:
        """Delete all points whose payload field key equals value.
        Used when a document is removed to drop all of its chunk vectors.

        Raises:
            ExternalServiceError: If the backend fails.
        """
        await self.do_with_retry(
            lambda: self._do_json_request(
                "POST",
                self._get_endpoint_delete_points(),
                body=self.get_delete_payload(key, value),
                params={"wait": "true"},
            ),
            description=f"delete of points with {key}={value}",
        )
