from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions.errors import TransientServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Embedding client for a self-hosted Ollama server (native /api/embed)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._server_url = self.get_config_val("BASE_URL", default=None, val_type="string").rstrip("/")
        # reverse proxies in front of ollama may require a token
        self._proxy_token = self.get_config_val("API_KEY", default="", val_type="string")
        # how long ollama keeps the model loaded after a call, e.g. "5m"
        self._keep_alive = self.get_config_val("KEEP_ALIVE", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_model(self) -> str | None:
        return "nomic-embed-text"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default="", secret=True),
            EnvConfig(env_key="KEEP_ALIVE", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._proxy_token}"} if self._proxy_token else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._server_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        payload = {"model": self.embed_model, "input": texts}
        if self._keep_alive:
            payload["keep_alive"] = self._keep_alive
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Read the "embeddings" list of an /api/embed answer.

        Ollama returns the vectors in input order, so no reordering happens here.

        Raises:
            TransientServiceError: If the answer carries no embeddings.
        """
        vectors = response_data.get("embeddings")
        if isinstance(vectors, list) and vectors:
            return vectors
        raise TransientServiceError(
            f"Ollama model '{self.embed_model}' answered without embeddings "
            f"(keys: {sorted(response_data)}).",
            service=self.get_client_type(),
        )
