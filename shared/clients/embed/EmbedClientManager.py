from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.EngineLoader import load_engine_class, read_engine_name
from shared.helper.HelperConfig import HelperConfig

DEFAULT_ENGINE = "openai"


class EmbedClientManager:
    """
    Instantiates the embedding client selected by EMBED_ENGINE.

    The vector dimension of the client must match the collection created by the
    vector store client, so it is logged together with the model at startup.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _initialize_client(self) -> EmbedClientInterface:
        """
        Raises:
            ValueError: If the engine is unknown or its configuration is incomplete.
        """
        engine = read_engine_name(self.helper_config, "EMBED_ENGINE", DEFAULT_ENGINE)
        client_class = load_engine_class("shared.clients.embed", "EmbedClient", engine)
        client = client_class(helper_config=self.helper_config)
        self.logging.info(
            "Embedding with %s model '%s' (dimension %d).",
            engine, client.embed_model, client.embed_dimension,
        )
        return client

    def get_client(self) -> EmbedClientInterface:
        return self.client
