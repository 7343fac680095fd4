from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, DocumentChunk, PageResult
from shared.models.query import QueryHistory


class MetaStoreInterface(ABC):
    """Relational store for documents, their chunks and the query history.

    All operations are coroutines. Implementations backed by blocking drivers
    must keep the event loop free (e.g. via asyncio.to_thread).
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the store engine. E.g. "sqlalchemy"
        """
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        """Open connections and create missing tables."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    @abstractmethod
    async def do_create_document(self, document: Document) -> Document:
        """Persist a new document and return it with id and upload_time set."""
        pass

    @abstractmethod
    async def do_get_document(self, document_id: int) -> Document | None:
        pass

    @abstractmethod
    async def do_update_document(self, document: Document) -> Document:
        """Write status, process_time, error_message and chunk_count of an existing document.

        Raises:
            NotFoundError: If the document no longer exists.
        """
        pass

    @abstractmethod
    async def do_delete_document(self, document_id: int) -> bool:
        """Delete a document together with all of its chunks.

        Returns:
            bool: False if the document did not exist.
        """
        pass

    @abstractmethod
    async def do_list_documents(self, page: int, size: int) -> PageResult[Document]:
        """List documents, most recently uploaded first. page is 1-based."""
        pass

    ##########################################
    ################ CHUNKS ##################
    ##########################################

    @abstractmethod
    async def do_insert_chunks(self, chunks: list[DocumentChunk]) -> None:
        """Insert all chunks in one transaction. Either all or none are stored."""
        pass

    @abstractmethod
    async def do_get_chunks_by_document(self, document_id: int) -> list[DocumentChunk]:
        """All chunks of a document ordered by chunk_index."""
        pass

    @abstractmethod
    async def do_get_chunk_by_vector_id(self, vector_id: str) -> DocumentChunk | None:
        pass

    @abstractmethod
    async def do_delete_chunks_by_document(self, document_id: int) -> int:
        """Delete all chunks of a document and return how many were removed."""
        pass

    ##########################################
    ################ HISTORY #################
    ##########################################

    @abstractmethod
    async def do_insert_history(self, history: QueryHistory) -> QueryHistory:
        pass

    @abstractmethod
    async def do_list_history(self, page: int, size: int) -> PageResult[QueryHistory]:
        """List history entries, newest first. page is 1-based."""
        pass
