"""Ingestion service.

Drives one uploaded document through extraction, chunking, embedding and
vector indexing, persists the chunk records and moves the document from
PROCESSING to COMPLETED or FAILED.
"""

import asyncio
import time
import uuid
from datetime import datetime
from pathlib import Path

from services.ingestion.Chunker import Chunker
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.extract.TextExtractor import TextExtractor
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, DocumentChunk, DocumentStatus
from shared.store.MetaStoreInterface import MetaStoreInterface


class IngestionService:
    """Turns an uploaded document into searchable chunks."""

    def __init__(
        self,
        helper_config: HelperConfig,
        meta_store: MetaStoreInterface,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        extractor: TextExtractor,
        chunker: Chunker,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._meta_store = meta_store
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._extractor = extractor
        self._chunker = chunker
        self.chunk_size = helper_config.get_int_val("DOCUMENT_CHUNK_SIZE", default=800, minimum=1)
        self.chunk_overlap = helper_config.get_int_val("DOCUMENT_CHUNK_OVERLAP", default=150, minimum=0)
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"DOCUMENT_CHUNK_OVERLAP ({self.chunk_overlap}) must be smaller than DOCUMENT_CHUNK_SIZE ({self.chunk_size})."
            )

    ##########################################
    ############### CORE INGEST ##############
    ##########################################

    async def do_process_document(self, document_id: int) -> None:
        """Ingest a single document. Never raises.

        Failures after the document was loaded mark it FAILED with the error message.

        Args:
            document_id (int): Id of a document in PROCESSING state.
        """
        started = time.perf_counter()
        try:
            document = await self._meta_store.do_get_document(document_id)
        except Exception as exc:
            self.logging.error("Could not load document id=%s for ingestion: %s", document_id, exc)
            return

        if document is None:
            self.logging.warning("Document id=%s not found. Skipping ingestion.", document_id)
            return
        if document.status != DocumentStatus.PROCESSING:
            self.logging.warning(
                "Document id=%s ('%s') is %s, not PROCESSING. Skipping ingestion.",
                document_id, document.file_name, document.status.value,
            )
            return

        self.logging.info("Ingesting document id=%s ('%s')...", document_id, document.file_name)
        indexed = False
        try:
            points, records = await self._build_chunks(document)

            # vectors first, the read path tolerates vectors without chunk records
            if points:
                await self._rag_client.do_upsert_points(points)
                indexed = True
            await self._meta_store.do_insert_chunks(records)

            document.status = DocumentStatus.COMPLETED
            document.chunk_count = len(records)
            document.process_time = datetime.now()
            document.error_message = None
            await self._meta_store.do_update_document(document)
        except Exception as exc:
            self.logging.error(
                "Ingestion failed for document id=%s ('%s'): %s", document_id, document.file_name, exc
            )
            if indexed:
                await self._cleanup_partial(document_id)
            await self._mark_failed(document_id, exc)
            return

        self.logging.info(
            "Ingested document id=%s ('%s'): %d chunks in %.2fs.",
            document_id, document.file_name, len(records), time.perf_counter() - started,
        )

    async def _build_chunks(self, document: Document) -> tuple[list[dict], list[DocumentChunk]]:
        """Extract, split and embed a document.

        Returns:
            tuple[list[dict], list[DocumentChunk]]: Vector points and chunk records in chunk order.
        """
        text = await asyncio.to_thread(self._extractor.extract, Path(document.file_path), document.file_type)
        chunks = self._chunker.split_text(text, self.chunk_size, self.chunk_overlap)
        if not chunks:
            self.logging.info("Document id=%s ('%s') produced no text chunks.", document.id, document.file_name)

        points: list[dict] = []
        records: list[DocumentChunk] = []
        for chunk_index, content in enumerate(chunks):
            vector_id = str(uuid.uuid4())
            vector = await self._embed_client.do_embed(content)
            payload = VectorPoint(
                document_id=document.id,
                chunk_index=chunk_index,
                content=content,
                document_name=document.file_name,
            )
            points.append({"id": vector_id, "vector": vector, "payload": payload.model_dump()})
            records.append(
                DocumentChunk(
                    document_id=document.id,
                    chunk_index=chunk_index,
                    content=content,
                    vector_id=vector_id,
                    char_count=len(content),
                )
            )
            self.logging.debug("Embedded chunk %d/%d of document id=%s.", chunk_index + 1, len(chunks), document.id)

        return points, records

    ##########################################
    ############### FAILURE ##################
    ##########################################

    async def _cleanup_partial(self, document_id: int) -> None:
        """Best-effort removal of vectors and chunk rows written before a failure."""
        try:
            await self._rag_client.do_delete_points_by_payload("document_id", document_id)
        except Exception as exc:
            self.logging.warning("Could not remove vectors of failed document id=%s: %s", document_id, exc)
        try:
            await self._meta_store.do_delete_chunks_by_document(document_id)
        except Exception as exc:
            self.logging.warning("Could not remove chunk records of failed document id=%s: %s", document_id, exc)

    async def _mark_failed(self, document_id: int, error: Exception) -> None:
        try:
            document = await self._meta_store.do_get_document(document_id)
            if document is None:
                self.logging.warning("Document id=%s vanished before it could be marked FAILED.", document_id)
                return
            document.status = DocumentStatus.FAILED
            document.error_message = str(error) or type(error).__name__
            document.process_time = datetime.now()
            await self._meta_store.do_update_document(document)
        except Exception as exc:
            self.logging.error("Could not mark document id=%s as FAILED: %s", document_id, exc)
