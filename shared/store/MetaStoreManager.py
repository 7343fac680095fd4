from shared.helper.EngineLoader import load_engine_class, read_engine_name
from shared.helper.HelperConfig import HelperConfig
from shared.store.MetaStoreInterface import MetaStoreInterface

DEFAULT_ENGINE = "sqlalchemy"


class MetaStoreManager:
    """Instantiates the metadata store selected by META_ENGINE."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.store = self._initialize_store()

    def _initialize_store(self) -> MetaStoreInterface:
        engine = read_engine_name(self.helper_config, "META_ENGINE", DEFAULT_ENGINE)
        store_class = load_engine_class("shared.store", "MetaStore", engine)
        store = store_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated metadata store for engine: %s", engine)
        return store

    def get_store(self) -> MetaStoreInterface:
        return self.store
