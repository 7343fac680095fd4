from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.EngineLoader import load_engine_class, read_engine_name
from shared.helper.HelperConfig import HelperConfig

DEFAULT_ENGINE = "openai"


class LLMClientManager:
    """Instantiates the chat completion client selected by LLM_ENGINE."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _initialize_client(self) -> LLMClientInterface:
        engine = read_engine_name(self.helper_config, "LLM_ENGINE", DEFAULT_ENGINE)
        client_class = load_engine_class("shared.clients.llm", "LLMClient", engine)
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated LLM client for engine %s (model '%s').", engine, client.chat_model)
        return client

    def get_client(self) -> LLMClientInterface:
        return self.client
