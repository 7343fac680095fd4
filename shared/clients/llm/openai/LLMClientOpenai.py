from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions.errors import ExternalServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class LLMClientOpenai(LLMClientInterface):
    """Chat completion client for OpenAI-compatible APIs (OpenRouter, OpenAI, vLLM, ...)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=OPENROUTER_BASE_URL, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        if not self._api_key:
            self.logging.warning("LLM_OPENAI_API_KEY is not set. Requests to %s will be unauthenticated.", self._base_url)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_default_chat_model(self) -> str | None:
        return "openai/gpt-4"

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

    def _get_endpoint_chat(self) -> str:
        return "/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], model: str | None = None) -> dict:
        return {"model": model or self.chat_model, "messages": messages}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        """Extract choices[0].message.content from a /chat/completions response.

        Raises:
            ExternalServiceError: If there are no choices or the first choice has no content.
        """
        choices = response_data.get("choices")
        if not choices or not isinstance(choices, list):
            raise ExternalServiceError(
                "Chat completion returned an empty result. "
                f"Response keys: {list(response_data.keys())}",
                service=self.get_client_type(),
            )
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if content is None:
            raise ExternalServiceError(
                "Chat completion choice does not contain message content.",
                service=self.get_client_type(),
            )
        return content
