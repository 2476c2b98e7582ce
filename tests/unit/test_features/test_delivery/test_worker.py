"""Tests for the background delivery worker."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from delivery_service.core.settings import DeliverySettings
from delivery_service.features.delivery.repository import CleanupResult
from delivery_service.features.delivery.service import BatchResult
from delivery_service.features.delivery.worker import (
    RETENTION_JOB_ID,
    TICK_JOB_ID,
    DeliveryWorker,
)


@pytest.fixture
def settings() -> DeliverySettings:
    return DeliverySettings(batch_size=10, backlog_warning_threshold=5)


@pytest.fixture
def service(make_adapter):
    """Service double with a real registry of two adapters."""
    from delivery_service.features.delivery.adapters.registry import AdapterRegistry

    registry = AdapterRegistry()
    registry.register(make_adapter("realtime"))
    registry.register(make_adapter("push"))

    mock = MagicMock()
    mock.registry = registry
    mock.process_batch = AsyncMock(return_value=BatchResult(processed=1, delivered=1))
    mock.outbox_depth = AsyncMock(return_value=0)
    mock.cleanup_delivered = AsyncMock(return_value=CleanupResult(deleted=3))
    mock.cleanup_failed = AsyncMock(return_value=CleanupResult(deleted=1))
    return mock


class TestRunOnce:
    """One pass over every registered adapter."""

    @pytest.mark.asyncio
    async def test_processes_each_adapter_with_batch_size(self, service, settings):
        worker = DeliveryWorker(service, settings)

        results = await worker.run_once()

        assert set(results) == {"realtime", "push"}
        assert [call.args[0] for call in service.process_batch.await_args_list] == [
            "realtime",
            "push",
        ]
        assert all(
            call.kwargs["batch_size"] == 10 for call in service.process_batch.await_args_list
        )
        assert worker.processing is False

    @pytest.mark.asyncio
    async def test_explicit_adapters_and_batch_size(self, service, settings):
        worker = DeliveryWorker(service, settings)

        results = await worker.run_once(["push"], batch_size=3)

        assert set(results) == {"push"}
        service.process_batch.assert_awaited_once_with("push", batch_size=3)
        service.outbox_depth.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_for_one_adapter_does_not_stop_the_pass(self, service, settings):
        service.process_batch.side_effect = [
            RuntimeError("database gone"),
            BatchResult(processed=2, delivered=2),
        ]
        worker = DeliveryWorker(service, settings)

        results = await worker.run_once()

        assert results == {"push": BatchResult(processed=2, delivered=2)}
        assert worker.processing is False

    @pytest.mark.asyncio
    async def test_overlapping_pass_is_skipped(self, service, settings):
        """A tick arriving while a pass is running does nothing."""
        release = asyncio.Event()

        async def slow_batch(name, batch_size):
            await release.wait()
            return BatchResult()

        service.process_batch.side_effect = slow_batch
        events = MagicMock()
        worker = DeliveryWorker(service, settings, events=events)

        first = asyncio.create_task(worker.run_once())
        await asyncio.sleep(0)
        assert worker.processing is True

        assert await worker.run_once() is None
        events.skipped.assert_called_once_with("*", "busy")

        release.set()
        assert await first is not None
        assert worker.processing is False
        assert service.process_batch.await_count == 2

    @pytest.mark.asyncio
    async def test_backlog_sets_gauge_and_warns(self, service, settings, caplog):
        from delivery_service.features.delivery import metrics

        service.outbox_depth.return_value = 12
        worker = DeliveryWorker(service, settings)

        with caplog.at_level("WARNING"):
            await worker.run_once()

        assert metrics.delivery_outbox_pending._value.get() == 12
        assert any("backlog" in record.message for record in caplog.records)

    @pytest.mark.asyncio
    async def test_backlog_below_threshold_is_quiet(self, service, settings, caplog):
        service.outbox_depth.return_value = 5
        worker = DeliveryWorker(service, settings)

        with caplog.at_level("WARNING"):
            await worker.run_once()

        assert not any("backlog" in record.message for record in caplog.records)


class TestRunCleanup:
    @pytest.mark.asyncio
    async def test_uses_retention_settings(self, service):
        worker = DeliveryWorker(
            service, DeliverySettings(delivered_retention_days=3, failed_retention_days=14)
        )

        assert await worker.run_cleanup() == (3, 1)
        service.cleanup_delivered.assert_awaited_once_with(3)
        service.cleanup_failed.assert_awaited_once_with(14)

    @pytest.mark.asyncio
    async def test_errors_are_logged_not_raised(self, service, settings):
        service.cleanup_delivered.side_effect = RuntimeError("locked")
        worker = DeliveryWorker(service, settings)

        assert await worker.run_cleanup() == (0, 0)


class TestLifecycle:
    """Scheduler start and stop."""

    @pytest.mark.asyncio
    async def test_start_schedules_jobs(self, service, settings):
        worker = DeliveryWorker(service, settings)

        worker.start(interval_ms=250)
        try:
            assert worker.running is True
            job_ids = {job.id for job in worker._scheduler.get_jobs()}
            assert job_ids == {TICK_JOB_ID, RETENTION_JOB_ID}
            tick = worker._scheduler.get_job(TICK_JOB_ID)
            assert tick.trigger.interval.total_seconds() == 0.25
        finally:
            await worker.stop()

        assert worker.running is False

    @pytest.mark.asyncio
    async def test_start_twice_is_ignored(self, service, settings):
        worker = DeliveryWorker(service, settings)
        worker.start()
        scheduler = worker._scheduler
        try:
            worker.start()
            assert worker._scheduler is scheduler
        finally:
            await worker.stop()

    @pytest.mark.asyncio
    async def test_stop_when_not_started(self, service, settings):
        worker = DeliveryWorker(service, settings)

        await worker.stop()

        assert worker.status().running is False
        assert worker.status().processing is False

    @pytest.mark.asyncio
    async def test_stop_waits_for_pass_in_flight(self, service, settings):
        release = asyncio.Event()
        finished = []

        async def slow_batch(name, batch_size):
            await release.wait()
            finished.append(name)
            return BatchResult()

        service.process_batch.side_effect = slow_batch
        worker = DeliveryWorker(service, settings)
        worker.start(interval_ms=60_000)
        task = asyncio.create_task(worker.run_once())
        await asyncio.sleep(0)

        stopper = asyncio.create_task(worker.stop(timeout=5))
        await asyncio.sleep(0)
        assert not stopper.done()

        release.set()
        await stopper
        await task
        assert finished == ["realtime", "push"]
