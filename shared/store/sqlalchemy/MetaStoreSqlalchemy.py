import asyncio
import os
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import create_engine, delete, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from shared.exceptions.errors import NotFoundError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, DocumentChunk, PageResult
from shared.models.query import QueryHistory
from shared.store.MetaStoreInterface import MetaStoreInterface
from shared.store.sqlalchemy.tables import Base, DocumentChunkRow, DocumentRow, QueryHistoryRow

DEFAULT_DATABASE_URL = "sqlite:///./data/rag.db"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class MetaStoreSqlalchemy(MetaStoreInterface):
    """Metadata store on any SQLAlchemy supported database (SQLite by default).

    Sessions are synchronous and run in worker threads, one session per call.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._database_url = helper_config.get_string_val("META_SQLALCHEMY_URL", default=DEFAULT_DATABASE_URL)
        self._echo = helper_config.get_bool_val("META_SQLALCHEMY_ECHO", default=False)
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Sqlalchemy"

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        await asyncio.to_thread(self._boot_sync)
        self.logging.info("Metadata store ready (%s).", self._engine.url.render_as_string(hide_password=True))

    def _boot_sync(self) -> None:
        is_sqlite = self._database_url.startswith("sqlite")
        if is_sqlite:
            self._ensure_sqlite_dir()
        self._engine = create_engine(
            self._database_url,
            connect_args={"check_same_thread": False} if is_sqlite else {},
            echo=self._echo,
        )
        if is_sqlite:
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = sessionmaker(bind=self._engine, autocommit=False, autoflush=False, expire_on_commit=False)
        Base.metadata.create_all(bind=self._engine)

    def _ensure_sqlite_dir(self) -> None:
        # sqlite:///relative/path.db or sqlite:////absolute/path.db
        db_path = self._database_url.split(":///", 1)[-1]
        if not db_path or db_path.startswith(":memory:"):
            return
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    async def close(self) -> None:
        if self._engine is not None:
            await asyncio.to_thread(self._engine.dispose)
            self._engine = None
            self._session_factory = None

    async def _run(self, work: Callable[[Session], Any]) -> Any:
        """Run work inside a fresh session in a worker thread and commit on success."""
        if self._session_factory is None:
            raise RuntimeError("Metadata store not initialised. Call boot() before using it.")

        def _in_session() -> Any:
            with self._session_factory() as session:
                try:
                    result = work(session)
                    session.commit()
                    return result
                except Exception:
                    session.rollback()
                    raise

        return await asyncio.to_thread(_in_session)

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def do_create_document(self, document: Document) -> Document:
        def _work(session: Session) -> Document:
            row = DocumentRow(**document.model_dump(exclude={"id", "upload_time"}, exclude_none=True))
            row.upload_time = document.upload_time or datetime.now()
            row.status = document.status.value
            session.add(row)
            session.flush()
            return Document.model_validate(row)

        return await self._run(_work)

    async def do_get_document(self, document_id: int) -> Document | None:
        def _work(session: Session) -> Document | None:
            row = session.get(DocumentRow, document_id)
            return Document.model_validate(row) if row is not None else None

        return await self._run(_work)

    async def do_update_document(self, document: Document) -> Document:
        def _work(session: Session) -> Document:
            row = session.get(DocumentRow, document.id)
            if row is None:
                raise NotFoundError(f"Document id={document.id} not found.")
            row.status = document.status.value
            row.process_time = document.process_time
            row.error_message = document.error_message
            row.chunk_count = document.chunk_count
            session.flush()
            return Document.model_validate(row)

        return await self._run(_work)

    async def do_delete_document(self, document_id: int) -> bool:
        def _work(session: Session) -> bool:
            row = session.get(DocumentRow, document_id)
            if row is None:
                return False
            session.execute(delete(DocumentChunkRow).where(DocumentChunkRow.document_id == document_id))
            session.delete(row)
            return True

        return await self._run(_work)

    async def do_list_documents(self, page: int, size: int) -> PageResult[Document]:
        def _work(session: Session) -> PageResult[Document]:
            total = session.scalar(select(func.count()).select_from(DocumentRow)) or 0
            rows = session.scalars(
                select(DocumentRow)
                .order_by(DocumentRow.upload_time.desc(), DocumentRow.id.desc())
                .offset((page - 1) * size)
                .limit(size)
            ).all()
            return PageResult[Document](
                total=total, page=page, size=size,
                records=[Document.model_validate(row) for row in rows],
            )

        return await self._run(_work)

    ##########################################
    ################ CHUNKS ##################
    ##########################################

    async def do_insert_chunks(self, chunks: list[DocumentChunk]) -> None:
        if not chunks:
            return

        def _work(session: Session) -> None:
            session.add_all(
                DocumentChunkRow(**chunk.model_dump(exclude={"id"}, exclude_none=True)) for chunk in chunks
            )

        await self._run(_work)

    async def do_get_chunks_by_document(self, document_id: int) -> list[DocumentChunk]:
        def _work(session: Session) -> list[DocumentChunk]:
            rows = session.scalars(
                select(DocumentChunkRow)
                .where(DocumentChunkRow.document_id == document_id)
                .order_by(DocumentChunkRow.chunk_index)
            ).all()
            return [DocumentChunk.model_validate(row) for row in rows]

        return await self._run(_work)

    async def do_get_chunk_by_vector_id(self, vector_id: str) -> DocumentChunk | None:
        def _work(session: Session) -> DocumentChunk | None:
            row = session.scalar(select(DocumentChunkRow).where(DocumentChunkRow.vector_id == vector_id))
            return DocumentChunk.model_validate(row) if row is not None else None

        return await self._run(_work)

    async def do_delete_chunks_by_document(self, document_id: int) -> int:
        def _work(session: Session) -> int:
            result = session.execute(delete(DocumentChunkRow).where(DocumentChunkRow.document_id == document_id))
            return result.rowcount or 0

        return await self._run(_work)

    ##########################################
    ################ HISTORY #################
    ##########################################

    async def do_insert_history(self, history: QueryHistory) -> QueryHistory:
        def _work(session: Session) -> QueryHistory:
            row = QueryHistoryRow(**history.model_dump(exclude={"id"}, exclude_none=True))
            row.query_time = history.query_time or datetime.now()
            session.add(row)
            session.flush()
            return QueryHistory.model_validate(row)

        return await self._run(_work)

    async def do_list_history(self, page: int, size: int) -> PageResult[QueryHistory]:
        def _work(session: Session) -> PageResult[QueryHistory]:
            total = session.scalar(select(func.count()).select_from(QueryHistoryRow)) or 0
            rows = session.scalars(
                select(QueryHistoryRow)
                .order_by(QueryHistoryRow.query_time.desc(), QueryHistoryRow.id.desc())
                .offset((page - 1) * size)
                .limit(size)
            ).all()
            return PageResult[QueryHistory](
                total=total, page=page, size=size,
                records=[QueryHistory.model_validate(row) for row in rows],
            )

        return await self._run(_work)
