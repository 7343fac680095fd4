from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.EngineLoader import load_engine_class, read_engine_name
from shared.helper.HelperConfig import HelperConfig

DEFAULT_ENGINE = "qdrant"


class RAGClientManager:
    """Instantiates the vector store client selected by RAG_ENGINE."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _initialize_client(self) -> RAGClientInterface:
        engine = read_engine_name(self.helper_config, "RAG_ENGINE", DEFAULT_ENGINE)
        client_class = load_engine_class("shared.clients.rag", "RAGClient", engine)
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated RAG client for engine %s (collection '%s').", engine, client.get_collection_name())
        return client

    def get_client(self) -> RAGClientInterface:
        return self.client
