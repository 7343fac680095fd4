from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions.errors import TransientServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class EmbedClientOpenai(EmbedClientInterface):
    """Embedding client for OpenAI-compatible APIs (OpenRouter, OpenAI, vLLM, ...)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=OPENROUTER_BASE_URL, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        if not self._api_key:
            self.logging.warning("EMBED_OPENAI_API_KEY is not set. Requests to %s will be unauthenticated.", self._base_url)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_default_model(self) -> str | None:
        return "openai/text-embedding-3-small"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=OPENROUTER_BASE_URL),
            EnvConfig(env_key="API_KEY", val_type="string", default="", secret=True),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the OpenAI embedding request body.

        A single text is sent as plain string, several texts as list.

        Returns:
            dict: {"model": "...", "input": "..." | [...]}
        """
        return {"model": self.embed_model, "input": texts[0] if len(texts) == 1 else texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from an OpenAI /embeddings response.

        Items are ordered by their "index" field; items without index keep their position.

        Raises:
            TransientServiceError: If "data" is missing, empty or holds an item without embedding.
        """
        data = response_data.get("data")
        if not data or not isinstance(data, list):
            raise TransientServiceError(
                "Embedding response does not contain data. "
                f"Response keys: {list(response_data.keys())}",
                service=self.get_client_type(),
            )
        items = sorted(
            enumerate(data),
            key=lambda pair: pair[1].get("index", pair[0]) if isinstance(pair[1], dict) else pair[0],
        )
        embeddings: list[list[float]] = []
        for position, item in items:
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not embedding:
                raise TransientServiceError(
                    f"Embedding response item {position} does not contain an embedding.",
                    service=self.get_client_type(),
                )
            embeddings.append(embedding)
        return embeddings
