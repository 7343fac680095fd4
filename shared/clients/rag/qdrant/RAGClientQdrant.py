from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.exceptions.errors import TransientServiceError
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:6333", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="document_chunks", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self) -> str:
        return self._collection_name

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:6333"),
            EnvConfig(env_key="API_KEY", val_type="string", default="", secret=True),
            EnvConfig(env_key="COLLECTION", val_type="string", default="document_chunks"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_collections(self) -> str:
        return "/collections"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_upsert_payload(self, points: list[dict[str, Any]]) -> dict:
        return {
            "points": [
                {"id": point["id"], "vector": point["vector"], "payload": point.get("payload") or {}}
                for point in points
            ]
        }

    def get_search_payload(self, query_vector: list[float], top_k: int) -> dict:
        return {"vector": query_vector, "limit": top_k, "with_payload": True}

    def get_delete_by_ids_payload(self, point_ids: list[str]) -> dict:
        return {"points": point_ids}

    def get_delete_payload(self, key: str, value: Any) -> dict:
        return {"filter": {"must": [{"key": key, "match": {"value": value}}]}}

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        result = raw_response.get("result")
        if result is None:
            raise TransientServiceError(
                f"Qdrant search response does not contain a result. Response keys: {list(raw_response.keys())}",
                service=self.get_client_type(),
            )
        hits = [
            SearchHit(
                # qdrant ids are either unsigned integers or UUID strings
                id=str(item.get("id")),
                score=float(item.get("score", 0.0)),
                payload=item.get("payload") or {},
            )
            for item in result
        ]
        return sorted(hits, key=lambda hit: hit.score, reverse=True)

    def extract_collection_exists(self, raw_response: dict) -> bool:
        return bool((raw_response.get("result") or {}).get("exists"))

    def extract_collection_names(self, raw_response: dict) -> list[str]:
        collections = (raw_response.get("result") or {}).get("collections") or []
        return [collection.get("name") for collection in collections if collection.get("name")]
