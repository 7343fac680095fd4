from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions.errors import ExternalServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    """Chat client for a self-hosted Ollama server (native /api/chat, non-streaming)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._server_url = self.get_config_val("BASE_URL", default=None, val_type="string").rstrip("/")
        self._proxy_token = self.get_config_val("API_KEY", default="", val_type="string")
        self._options = self._read_model_options()

    def _read_model_options(self) -> dict:
        options = {}
        temperature = self.get_config_val("TEMPERATURE", default="", val_type="string")
        if temperature:
            options["temperature"] = float(temperature)
        context_window = self.get_config_val("NUM_CTX", default="", val_type="string")
        if context_window:
            options["num_ctx"] = int(context_window)
        return options

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_chat_model(self) -> str | None:
        return "llama3.1"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default="", secret=True),
            EnvConfig(env_key="TEMPERATURE", val_type="string", default=""),
            EnvConfig(env_key="NUM_CTX", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._proxy_token}"} if self._proxy_token else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._server_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], model: str | None = None) -> dict:
        payload = {"model": model or self.chat_model, "messages": messages, "stream": False}
        if self._options:
            payload["options"] = dict(self._options)
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        """Return message.content of a non-streamed /api/chat answer.

        Raises:
            ExternalServiceError: If the answer has no assistant message.
        """
        message = response_data.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        raise ExternalServiceError(
            f"Ollama model '{response_data.get('model', self.chat_model)}' answered without a message "
            f"(done_reason: {response_data.get('done_reason')}).",
            service=self.get_client_type(),
        )
