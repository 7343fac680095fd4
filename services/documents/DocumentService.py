"""Document service.

Accepts uploads, stores the files, creates the document records and hands
them to the ingestion worker pool. Also lists, shows and deletes documents
and lists the query history.
"""

import asyncio
import os
import uuid
from pathlib import Path

from services.ingestion.Chunker import Chunker
from services.ingestion.IngestionWorkerPool import IngestionWorkerPool
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.exceptions.errors import InternalError, InvalidArgumentError, NotFoundError, PayloadTooLargeError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, DocumentDetail, DocumentStatus, PageResult
from shared.models.query import QueryHistory
from shared.store.MetaStoreInterface import MetaStoreInterface

MAX_PAGE_SIZE = 100


class DocumentService:
    def __init__(
        self,
        helper_config: HelperConfig,
        meta_store: MetaStoreInterface,
        rag_client: RAGClientInterface,
        worker_pool: IngestionWorkerPool,
        chunker: Chunker,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._meta_store = meta_store
        self._rag_client = rag_client
        self._worker_pool = worker_pool
        self._chunker = chunker
        self.upload_dir = Path(helper_config.get_string_val("DOCUMENT_UPLOAD_DIR", default="./uploads"))
        self.max_file_size = helper_config.get_int_val("DOCUMENT_MAX_FILE_SIZE", default=50 * 1024 * 1024, minimum=1)
        self.supported_formats = [
            fmt.lower().lstrip(".")
            for fmt in helper_config.get_list_val("DOCUMENT_SUPPORTED_FORMATS", default=["pdf", "txt", "docx", "md"])
        ]

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def _validate_page(self, page: int, size: int) -> None:
        if page < 1:
            raise InvalidArgumentError(f"page must be >= 1, got {page}.")
        if size < 1 or size > MAX_PAGE_SIZE:
            raise InvalidArgumentError(f"size must be between 1 and {MAX_PAGE_SIZE}, got {size}.")

    def _resolve_file_type(self, file_name: str, content_type: str | None) -> str:
        """Validate the extension and return the MIME type stored with the document.

        Raises:
            InvalidArgumentError: If the extension is not in DOCUMENT_SUPPORTED_FORMATS
                or maps to a type that cannot be ingested.
        """
        extension = Path(file_name).suffix.lower().lstrip(".")
        if not extension or extension not in self.supported_formats:
            raise InvalidArgumentError(
                f"Unsupported file format '{extension or file_name}'. Supported formats: {', '.join(self.supported_formats)}."
            )
        mime_type = self._chunker.mime_type_for_extension(extension) or content_type
        if not self._chunker.is_supported(mime_type):
            raise InvalidArgumentError(f"Unsupported file type '{mime_type}' for '{file_name}'.")
        return mime_type

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def do_upload(self, file_name: str | None, content_type: str | None, data: bytes) -> Document:
        """Store an uploaded file and schedule its ingestion.

        Args:
            file_name (str | None): Original client file name, only the base name is kept.
            content_type (str | None): MIME type declared by the client.
            data (bytes): File content.

        Returns:
            Document: The created document in PROCESSING state.

        Raises:
            InvalidArgumentError: If the file is empty, unnamed or of an unsupported format.
            PayloadTooLargeError: If the file exceeds DOCUMENT_MAX_FILE_SIZE.
            InternalError: If the document could not be handed to the ingestion pool.
        """
        if not data:
            raise InvalidArgumentError("Uploaded file must not be empty.")
        safe_name = Path((file_name or "").replace("\\", "/")).name.strip()
        if not safe_name:
            raise InvalidArgumentError("Uploaded file must have a name.")
        if len(data) > self.max_file_size:
            raise PayloadTooLargeError(
                f"File '{safe_name}' is {len(data)} bytes, the limit is {self.max_file_size} bytes."
            )
        file_type = self._resolve_file_type(safe_name, content_type)

        target = self.upload_dir / f"{uuid.uuid4().hex}_{safe_name}"
        await asyncio.to_thread(self._write_file, target, data)

        try:
            document = await self._meta_store.do_create_document(
                Document(
                    file_name=safe_name,
                    file_size=len(data),
                    file_type=file_type,
                    file_path=str(target),
                    status=DocumentStatus.PROCESSING,
                    chunk_count=0,
                )
            )
        except Exception:
            await asyncio.to_thread(self._remove_file, target)
            raise

        self.logging.info(
            "Stored upload '%s' (%d bytes) as document id=%s.", safe_name, len(data), document.id
        )
        try:
            await self._worker_pool.submit(document.id)
        except RuntimeError as exc:
            self.logging.error("Could not schedule ingestion of document id=%s: %s", document.id, exc)
            document.status = DocumentStatus.FAILED
            document.error_message = f"Ingestion could not be scheduled: {exc}"
            await self._meta_store.do_update_document(document)
            raise InternalError(f"Ingestion of document id={document.id} could not be scheduled.") from exc
        return document

    async def do_list_documents(self, page: int = 1, size: int = 10) -> PageResult[Document]:
        self._validate_page(page, size)
        return await self._meta_store.do_list_documents(page, size)

    async def do_get_document(self, document_id: int) -> DocumentDetail:
        """Return a document with its chunks.

        Raises:
            NotFoundError: If the document does not exist.
        """
        document = await self._meta_store.do_get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document id={document_id} not found.")
        chunks = await self._meta_store.do_get_chunks_by_document(document_id)
        return DocumentDetail(**document.model_dump(), chunks=chunks)

    async def do_delete_document(self, document_id: int) -> None:
        """Delete a document, its stored file, its vectors and its chunk records.

        The stored file and the vectors are removed best-effort; failures are
        logged and do not prevent the record deletion.

        Raises:
            NotFoundError: If the document does not exist.
        """
        document = await self._meta_store.do_get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document id={document_id} not found.")

        try:
            await asyncio.to_thread(self._remove_file, Path(document.file_path))
        except OSError as exc:
            self.logging.warning("Could not delete file '%s' of document id=%s: %s", document.file_path, document_id, exc)

        try:
            await self._rag_client.do_delete_points_by_payload("document_id", document_id)
        except Exception as exc:
            self.logging.error(
                "Could not delete vectors of document id=%s, continuing with record deletion: %s", document_id, exc
            )

        await self._meta_store.do_delete_document(document_id)
        self.logging.info("Deleted document id=%s ('%s').", document_id, document.file_name)

    ##########################################
    ################ HISTORY #################
    ##########################################

    async def do_list_history(self, page: int = 1, size: int = 20) -> PageResult[QueryHistory]:
        self._validate_page(page, size)
        return await self._meta_store.do_list_history(page, size)

    ##########################################
    ################# FILES ##################
    ##########################################

    def _write_file(self, target: Path, data: bytes) -> None:
        os.makedirs(target.parent, exist_ok=True)
        target.write_bytes(data)

    def _remove_file(self, target: Path) -> None:
        if target.exists():
            target.unlink()
