"""Tests for services/ingestion/IngestionWorkerPool.py"""

import asyncio

import pytest

from services.ingestion.IngestionWorkerPool import IngestionWorkerPool


class GatedHandler:
    """Records job ids and blocks every job until the gate opens."""

    def __init__(self, open_gate: bool = False) -> None:
        self.gate = asyncio.Event()
        if open_gate:
            self.gate.set()
        self.started: list[int] = []
        self.finished: list[int] = []

    async def __call__(self, document_id: int) -> None:
        self.started.append(document_id)
        await self.gate.wait()
        self.finished.append(document_id)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def pool_env(monkeypatch):
    monkeypatch.setenv("INGEST_CORE_WORKERS", "1")
    monkeypatch.setenv("INGEST_MAX_WORKERS", "2")
    monkeypatch.setenv("INGEST_QUEUE_CAPACITY", "1")


class TestLifecycle:
    async def test_submit_before_start(self, helper_config):
        pool = IngestionWorkerPool(helper_config=helper_config, handler=GatedHandler(open_gate=True))
        with pytest.raises(RuntimeError):
            await pool.submit(1)

    async def test_processes_jobs(self, helper_config):
        handler = GatedHandler(open_gate=True)
        pool = IngestionWorkerPool(helper_config=helper_config, handler=handler)
        await pool.start()
        try:
            for document_id in (1, 2, 3):
                assert await pool.submit(document_id) is True
            await pool.wait_idle()
            assert sorted(handler.finished) == [1, 2, 3]
            assert not pool.is_in_flight(1)
        finally:
            await pool.stop()
        assert pool.is_running is False
        assert pool.get_active_workers() == 0

    async def test_stop_drains_queue(self, helper_config):
        handler = GatedHandler()
        pool = IngestionWorkerPool(helper_config=helper_config, handler=handler)
        await pool.start()
        await pool.submit(1)
        await pool.submit(2)
        await wait_until(lambda: len(handler.started) == 2)

        stop = asyncio.create_task(pool.stop(timeout=2))
        await asyncio.sleep(0.05)
        with pytest.raises(RuntimeError):
            await pool.submit(3)
        handler.gate.set()
        await stop
        assert sorted(handler.finished) == [1, 2]

    async def test_stop_timeout_abandons_work(self, helper_config):
        handler = GatedHandler()
        pool = IngestionWorkerPool(helper_config=helper_config, handler=handler)
        await pool.start()
        await pool.submit(1)
        await pool.stop(timeout=0.05)
        assert handler.finished == []
        assert pool.get_active_workers() == 0

    def test_max_below_core_rejected(self, helper_config, monkeypatch):
        monkeypatch.setenv("INGEST_CORE_WORKERS", "4")
        monkeypatch.setenv("INGEST_MAX_WORKERS", "2")
        with pytest.raises(ValueError):
            IngestionWorkerPool(helper_config=helper_config, handler=GatedHandler())


class TestBackpressure:
    async def test_duplicate_submission_is_ignored(self, helper_config):
        handler = GatedHandler()
        pool = IngestionWorkerPool(helper_config=helper_config, handler=handler)
        await pool.start()
        try:
            assert await pool.submit(7) is True
            await wait_until(lambda: handler.started == [7])
            assert await pool.submit(7) is False
            assert pool.is_in_flight(7)
            handler.gate.set()
            await pool.wait_idle()
            assert handler.finished == [7]
            # finished documents may be submitted again
            assert await pool.submit(7) is True
            await pool.wait_idle()
        finally:
            await pool.stop()

    async def test_burst_worker_then_caller_runs(self, helper_config, pool_env):
        handler = GatedHandler()
        pool = IngestionWorkerPool(helper_config=helper_config, handler=handler)
        await pool.start()
        try:
            await pool.submit(1)
            await wait_until(lambda: handler.started == [1])

            # fills the queue
            await pool.submit(2)
            assert pool.get_queue_size() == 1

            # queue full: burst worker
            await pool.submit(3)
            assert pool.get_active_workers() == 2

            # queue full and all workers busy: the caller runs the job
            handler.gate.set()
            assert await pool.submit(4) is True
            assert 4 in handler.finished

            await pool.wait_idle()
            assert sorted(handler.finished) == [1, 2, 3, 4]
        finally:
            await pool.stop()

    async def test_handler_errors_do_not_kill_workers(self, helper_config):
        seen: list[int] = []

        async def flaky(document_id: int) -> None:
            seen.append(document_id)
            if document_id == 1:
                raise RuntimeError("boom")

        pool = IngestionWorkerPool(helper_config=helper_config, handler=flaky)
        await pool.start()
        try:
            await pool.submit(1)
            await pool.submit(2)
            await pool.wait_idle()
            assert sorted(seen) == [1, 2]
            assert not pool.is_in_flight(1)
        finally:
            await pool.stop()
