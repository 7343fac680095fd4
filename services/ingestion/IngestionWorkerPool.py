"""Bounded background execution of ingestion jobs.

A fixed number of core workers consume a bounded queue. When the queue is full,
short-lived burst workers are spawned up to the configured maximum. When that
ceiling is reached too, the job runs in the submitting coroutine, which slows
down the producer instead of dropping work.
"""

import asyncio
from typing import Awaitable, Callable

from shared.helper.HelperConfig import HelperConfig


class IngestionWorkerPool:
    """Runs handler(document_id) off the request path with bounded concurrency."""

    def __init__(self, helper_config: HelperConfig, handler: Callable[[int], Awaitable[None]]) -> None:
        self.logging = helper_config.get_logger()
        self._handler = handler
        self.core_workers = helper_config.get_int_val("INGEST_CORE_WORKERS", default=2, minimum=1)
        self.max_workers = helper_config.get_int_val("INGEST_MAX_WORKERS", default=5, minimum=1)
        self.queue_capacity = helper_config.get_int_val("INGEST_QUEUE_CAPACITY", default=20, minimum=1)
        self.shutdown_timeout = float(helper_config.get_number_val("INGEST_SHUTDOWN_TIMEOUT", default=60))
        if self.max_workers < self.core_workers:
            raise ValueError(
                f"INGEST_MAX_WORKERS ({self.max_workers}) must be >= INGEST_CORE_WORKERS ({self.core_workers})."
            )

        self._queue: asyncio.Queue[int] | None = None
        self._core_tasks: set[asyncio.Task] = set()
        self._burst_tasks: set[asyncio.Task] = set()
        self._in_flight: set[int] = set()
        self._running = False

    ##########################################
    ################ GETTER ##################
    ##########################################

    @property
    def is_running(self) -> bool:
        return self._running

    def get_active_workers(self) -> int:
        return len(self._core_tasks) + len(self._burst_tasks)

    def get_queue_size(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def is_in_flight(self, document_id: int) -> bool:
        return document_id in self._in_flight

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def start(self) -> None:
        if self._running:
            self.logging.warning("Ingestion worker pool already running.")
            return
        self._queue = asyncio.Queue(maxsize=self.queue_capacity)
        for number in range(self.core_workers):
            self._core_tasks.add(asyncio.create_task(self._core_loop(number), name=f"ingest-core-{number}"))
        self._running = True
        self.logging.info(
            "Ingestion worker pool started (core=%d, max=%d, queue=%d).",
            self.core_workers, self.max_workers, self.queue_capacity,
        )

    async def stop(self, timeout: float | None = None) -> None:
        """Stop accepting jobs, wait for queued and running jobs, then cancel all workers.

        Args:
            timeout (float | None): Seconds to wait for pending work, defaults to INGEST_SHUTDOWN_TIMEOUT.
        """
        if not self._running:
            return
        self._running = False
        timeout = self.shutdown_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(self.wait_idle(), timeout=timeout)
        except asyncio.TimeoutError:
            self.logging.warning(
                "Ingestion worker pool did not drain within %.0fs. %d queued job(s) abandoned, documents stay in PROCESSING.",
                timeout, self.get_queue_size(),
            )

        tasks = [*self._core_tasks, *self._burst_tasks]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._core_tasks.clear()
        self._burst_tasks.clear()
        self.logging.info("Ingestion worker pool stopped.")

    async def wait_idle(self) -> None:
        """Wait until the queue is empty and no burst worker is left."""
        if self._queue is not None:
            await self._queue.join()
        while True:
            pending = [task for task in self._burst_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    ##########################################
    ################ SUBMIT ##################
    ##########################################

    async def submit(self, document_id: int) -> bool:
        """Schedule ingestion of a document.

        Returns:
            bool: False if the document is already queued or being processed.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._running or self._queue is None:
            raise RuntimeError("Ingestion worker pool is not running. Call start() first.")
        if document_id in self._in_flight:
            self.logging.warning("Document id=%s is already queued for ingestion. Ignoring duplicate trigger.", document_id)
            return False

        self._in_flight.add(document_id)
        try:
            self._queue.put_nowait(document_id)
            self.logging.debug("Queued document id=%s for ingestion (%d waiting).", document_id, self._queue.qsize())
            return True
        except asyncio.QueueFull:
            pass

        if self.get_active_workers() < self.max_workers:
            task = asyncio.create_task(self._burst_loop(document_id), name=f"ingest-burst-{document_id}")
            self._burst_tasks.add(task)
            task.add_done_callback(self._burst_tasks.discard)
            self.logging.info(
                "Ingestion queue full, started burst worker for document id=%s (%d active workers).",
                document_id, self.get_active_workers(),
            )
            return True

        self.logging.warning(
            "Ingestion pool saturated (%d workers, %d queued). Processing document id=%s in the caller.",
            self.get_active_workers(), self._queue.qsize(), document_id,
        )
        await self._run_job(document_id)
        return True

    ##########################################
    ################ WORKERS #################
    ##########################################

    async def _run_job(self, document_id: int) -> None:
        try:
            await self._handler(document_id)
        except Exception as exc:
            # the handler records failures itself, anything reaching here is a bug
            self.logging.exception("Unhandled error while ingesting document id=%s: %s", document_id, exc)
        finally:
            self._in_flight.discard(document_id)

    async def _core_loop(self, number: int) -> None:
        while True:
            document_id = await self._queue.get()
            try:
                await self._run_job(document_id)
            finally:
                self._queue.task_done()

    async def _burst_loop(self, document_id: int) -> None:
        await self._run_job(document_id)
        # help draining the backlog, then exit
        while True:
            try:
                queued_id = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                await self._run_job(queued_id)
            finally:
                self._queue.task_done()
