"""Background delivery worker.

An APScheduler ``AsyncIOScheduler`` fires two interval jobs:

- ``delivery-worker-tick``: ``run_once``, one batch per registered adapter,
  then a backlog check
- ``delivery-retention``: removes old delivered and failed outbox rows

A tick that fires while the previous pass is still running is dropped,
so at most one pass is in flight per worker.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from delivery_service.core.settings import DeliverySettings
from delivery_service.features.delivery import metrics
from delivery_service.features.delivery.observability import DeliveryEvents
from delivery_service.infra.logging import log_context

if TYPE_CHECKING:
    from collections.abc import Sequence

    from delivery_service.features.delivery.service import BatchResult, DeliveryService

logger = logging.getLogger(__name__)

TICK_JOB_ID = "delivery-worker-tick"
RETENTION_JOB_ID = "delivery-retention"


@dataclass(frozen=True, slots=True)
class WorkerStatus:
    running: bool
    processing: bool


class DeliveryWorker:
    """Periodically drains the outbox for every registered adapter.

    Args:
        service: Delivery service whose registry is iterated each pass
        settings: Batch size, interval, retention and backlog threshold
        events: Observability sink

    Example:
        worker = DeliveryWorker(service, settings)
        worker.start(interval_ms=5000)
        ...
        await worker.stop()
    """

    def __init__(
        self,
        service: DeliveryService,
        settings: DeliverySettings | None = None,
        events: DeliveryEvents | None = None,
    ) -> None:
        self.service = service
        self.settings = settings or DeliverySettings()
        self._events = events or DeliveryEvents()
        self._scheduler: AsyncIOScheduler | None = None
        self._processing = False
        self._current: asyncio.Task[object] | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def processing(self) -> bool:
        return self._processing

    def status(self) -> WorkerStatus:
        return WorkerStatus(running=self.running, processing=self._processing)

    def start(self, interval_ms: int | None = None) -> None:
        """Schedule periodic passes. Must be called from a running event loop.

        A second call while running is ignored.
        """
        if self._scheduler is not None:
            logger.warning("Delivery worker already running")
            return

        interval = (interval_ms or self.settings.interval_ms) / 1000
        scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={"coalesce": True, "misfire_grace_time": 30},
        )
        # Overlapping ticks reach run_once and are dropped by the processing flag
        scheduler.add_job(
            self.run_once,
            IntervalTrigger(seconds=interval),
            id=TICK_JOB_ID,
            name="Deliver pending notifications",
            max_instances=2,
            replace_existing=True,
        )
        scheduler.add_job(
            self.run_cleanup,
            IntervalTrigger(seconds=self.settings.cleanup_interval_seconds),
            id=RETENTION_JOB_ID,
            name="Outbox retention cleanup",
            max_instances=1,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Delivery worker started",
            extra={
                "interval_seconds": interval,
                "batch_size": self.settings.batch_size,
                "adapters": self.service.registry.names(),
            },
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop scheduling passes and wait up to ``timeout`` for the one in flight.

        The in-flight pass is never cancelled; past the timeout it keeps
        running in the background.
        """
        if self._scheduler is None:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None

        current = self._current
        if current is not None and not current.done():
            _, pending = await asyncio.wait({current}, timeout=timeout)
            if pending:
                logger.warning("Delivery pass still running after worker stop")

        logger.info("Delivery worker stopped")

    async def run_once(
        self,
        adapters: Sequence[str] | None = None,
        *,
        batch_size: int | None = None,
    ) -> dict[str, BatchResult] | None:
        """Run one pass, then check the backlog.

        Args:
            adapters: Adapter names to process, in order. Defaults to every
                registered adapter.
            batch_size: Rows per adapter. Defaults to the configured size.

        Returns:
            Batch result per adapter, or None if a pass was already running.
            An adapter whose batch raised is missing from the result.
        """
        if self._processing:
            logger.debug("Previous delivery pass still running, tick skipped")
            self._events.skipped("*", "busy")
            return None

        names = list(adapters) if adapters is not None else self.service.registry.names()
        size = batch_size or self.settings.batch_size
        self._processing = True
        self._current = asyncio.current_task()
        try:
            results: dict[str, BatchResult] = {}
            for name in names:
                with log_context(adapter=name):
                    try:
                        results[name] = await self.service.process_batch(name, batch_size=size)
                    except Exception:
                        logger.exception("Delivery batch failed")

            await self._check_backlog()
            return results
        finally:
            self._processing = False
            self._current = None

    async def _check_backlog(self) -> None:
        try:
            depth = await self.service.outbox_depth()
        except Exception:
            logger.exception("Failed to measure outbox depth")
            return

        metrics.delivery_outbox_pending.set(depth)
        if depth > self.settings.backlog_warning_threshold:
            logger.warning(
                "Outbox backlog above threshold",
                extra={
                    "pending": depth,
                    "threshold": self.settings.backlog_warning_threshold,
                    "near_miss": True,
                },
            )

    async def run_cleanup(self) -> tuple[int, int]:
        """Apply retention. Returns (delivered_deleted, failed_deleted)."""
        try:
            delivered = await self.service.cleanup_delivered(self.settings.delivered_retention_days)
            failed = await self.service.cleanup_failed(self.settings.failed_retention_days)
        except Exception:
            logger.exception("Outbox retention cleanup failed")
            return 0, 0

        if delivered.deleted or failed.deleted:
            logger.info(
                "Outbox retention cleanup",
                extra={"delivered_deleted": delivered.deleted, "failed_deleted": failed.deleted},
            )
        return delivered.deleted, failed.deleted


__all__ = ["RETENTION_JOB_ID", "TICK_JOB_ID", "DeliveryWorker", "WorkerStatus"]
