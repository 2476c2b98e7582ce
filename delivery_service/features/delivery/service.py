"""Delivery orchestration.

``DeliveryService`` owns the outbox workflow for every registered adapter:

- ``schedule`` records one pending row per adapter for a new notification
- ``deliver_now`` makes a best-effort realtime attempt outside the outbox
- ``process_batch`` drains due rows of one adapter and records outcomes

Scheduling and processing never raise on delivery problems. ``process_batch``
claims its rows in a short transaction and records each outcome in a
transaction of its own, so no lock is held while an adapter talks to the
outside world. A failed outcome write is captured and only costs that row
a repeat attempt. A failed fetch propagates to the worker, which logs it
and moves on to the next adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import TYPE_CHECKING, Any

from delivery_service.features.delivery import metrics
from delivery_service.features.delivery.adapters.base import DeliveryResult
from delivery_service.features.delivery.adapters.realtime import REALTIME_ADAPTER_NAME
from delivery_service.features.delivery.models import OutboxStatus
from delivery_service.features.delivery.observability import DeliveryEvents
from delivery_service.features.delivery.repository import CleanupResult, OutboxRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from delivery_service.features.delivery.adapters.base import DeliveryAdapter
    from delivery_service.features.delivery.adapters.registry import AdapterRegistry
    from delivery_service.features.delivery.models import NotificationOutbox
    from delivery_service.features.delivery.repository import PendingDelivery

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Counts from one ``process_batch`` call; ``processed == delivered + failed``."""

    processed: int = 0
    delivered: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class ImmediateResult:
    delivered: bool
    error: str | None = None


class DeliveryService:
    """Outbox scheduling, immediate delivery and batch processing.

    Args:
        registry: Adapters to schedule for and process
        session_factory: Produces sessions; each operation opens its own
        repository: Outbox repository (retry policy lives here)
        events: Observability sink

    Example:
        service = DeliveryService(registry, AsyncSessionLocal)
        await service.init(realtime=RealtimeAdapter(), push=push_adapter)
        await service.schedule("n-1")
        result = await service.process_batch("realtime")
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        repository: OutboxRepository | None = None,
        events: DeliveryEvents | None = None,
    ) -> None:
        self.registry = registry
        self._session_factory = session_factory
        self.repository = repository or OutboxRepository()
        self._events = events or DeliveryEvents()

    async def init(
        self,
        *,
        realtime: DeliveryAdapter,
        push: DeliveryAdapter | None = None,
    ) -> list[str]:
        """Register the realtime adapter, and the push adapter if its transport is ready.

        Returns:
            Registered adapter names
        """
        self.registry.register(realtime)

        if push is not None:
            try:
                push_ready = await push.is_ready()
            except Exception as e:
                self._events.capture_exception(e, operation="init", adapter=push.name)
                push_ready = False
            if push_ready:
                self.registry.register(push)
            else:
                logger.info("Push transport unavailable, push adapter not registered")

        names = self.registry.names()
        logger.info("Delivery adapters registered", extra={"adapters": names})
        return names

    # ──────────────────────────────────────────────────────────────
    # Scheduling
    # ──────────────────────────────────────────────────────────────

    async def schedule(self, notification_id: str) -> list[str]:
        """Enqueue ``notification_id`` for every registered adapter.

        Each adapter gets its own transaction, so a failure for one does
        not prevent the others.

        Returns:
            Names of adapters for which a row exists afterwards (new or
            duplicate), in registration order
        """
        scheduled: list[str] = []
        for name in self.registry.names():
            try:
                async with self._session_factory() as session:
                    result = await self.repository.enqueue(session, notification_id, name)
                    await session.commit()
            except Exception as e:
                self._events.enqueued(name, notification_id, result="error")
                self._events.capture_exception(
                    e, operation="schedule", adapter=name, notification_id=notification_id
                )
                continue

            self._events.enqueued(
                name, notification_id, result="enqueued" if result.enqueued else "duplicate"
            )
            scheduled.append(name)
        return scheduled

    async def deliver_now(
        self,
        notification_id: str,
        recipient_id: str,
        payload: dict[str, Any],
    ) -> ImmediateResult:
        """Best-effort realtime delivery that bypasses the outbox.

        Never raises and never touches outbox rows.
        """
        adapter = self.registry.get(REALTIME_ADAPTER_NAME)
        if adapter is None:
            metrics.delivery_immediate_total.labels(outcome="unavailable").inc()
            return ImmediateResult(delivered=False, error="Realtime adapter not registered")

        try:
            result = await adapter.deliver(notification_id, recipient_id, payload)
        except Exception as e:
            self._events.capture_exception(
                e, operation="deliver_now", notification_id=notification_id
            )
            metrics.delivery_immediate_total.labels(outcome="error").inc()
            return ImmediateResult(delivered=False, error=str(e) or type(e).__name__)

        metrics.delivery_immediate_total.labels(
            outcome="delivered" if result.ok else "failed"
        ).inc()
        return ImmediateResult(delivered=result.ok, error=result.error)

    # ──────────────────────────────────────────────────────────────
    # Batch processing
    # ──────────────────────────────────────────────────────────────

    async def process_batch(self, adapter_name: str, batch_size: int = 50) -> BatchResult:
        """Attempt delivery of up to ``batch_size`` due rows for one adapter.

        An unknown or not-ready adapter yields an empty result and leaves
        every row untouched.

        Args:
            adapter_name: Registered adapter name
            batch_size: Maximum rows to attempt

        Returns:
            Processed, delivered and failed counts
        """
        adapter = self.registry.get(adapter_name)
        if adapter is None:
            logger.warning("No delivery adapter registered", extra={"adapter": adapter_name})
            self._events.skipped(adapter_name, "missing")
            return BatchResult()

        try:
            ready = await adapter.is_ready()
        except Exception as e:
            self._events.capture_exception(e, operation="is_ready", adapter=adapter_name)
            ready = False
        if not ready:
            self._events.skipped(adapter_name, "unready")
            return BatchResult()

        delivered = failed = 0
        started = time.perf_counter()
        async with self._session_factory() as session:
            entries = await self.repository.fetch_pending(session, adapter_name, batch_size=batch_size)
            await session.commit()
        if not entries:
            return BatchResult()

        self._events.breadcrumb(
            "outbox", "Processing outbox batch", adapter=adapter_name, batch_size=len(entries)
        )
        for entry in entries:
            if await self._attempt(adapter, entry):
                delivered += 1
            else:
                failed += 1

        metrics.delivery_batch_duration_seconds.labels(adapter=adapter_name).observe(
            time.perf_counter() - started
        )
        result = BatchResult(processed=delivered + failed, delivered=delivered, failed=failed)
        logger.info(
            "Outbox batch processed",
            extra={
                "adapter": adapter_name,
                "processed": result.processed,
                "delivered": result.delivered,
                "failed": result.failed,
            },
        )
        return result

    async def _attempt(self, adapter: DeliveryAdapter, entry: PendingDelivery) -> bool:
        """Deliver one row and record the outcome. Returns True if the transport succeeded.

        No transaction is open while the adapter runs. The outcome is then
        written in a transaction of its own; if that write fails the error is
        captured and the row stays as it was, to be attempted again later.
        """
        unexpected = False
        try:
            result = await adapter.deliver(entry.notification_id, entry.recipient_id, entry.payload)
        except Exception as e:
            unexpected = True
            self._events.capture_exception(
                e,
                operation="process_batch",
                adapter=entry.adapter,
                outbox_id=entry.id,
                notification_id=entry.notification_id,
            )
            result = DeliveryResult.failure(str(e) or type(e).__name__, retryable=True)

        try:
            status = await self._record(entry, result)
        except Exception as e:
            self._events.capture_exception(
                e,
                operation="record_outcome",
                adapter=entry.adapter,
                outbox_id=entry.id,
                notification_id=entry.notification_id,
            )
            return result.ok

        if result.ok:
            outcome = "delivered"
        elif unexpected:
            outcome = "unexpected"
        elif status == OutboxStatus.FAILED:
            outcome = "permanent"
        else:
            outcome = "transient"
        self._events.attempt(
            entry.adapter, entry.id, entry.notification_id, outcome=outcome, error=result.error
        )
        return result.ok

    async def _record(self, entry: PendingDelivery, result: DeliveryResult) -> OutboxStatus | None:
        async with self._session_factory() as session:
            if result.ok:
                changed = await self.repository.mark_delivered(session, entry.id)
                status = OutboxStatus.DELIVERED if changed else None
            else:
                status = await self.repository.mark_failed(
                    session,
                    entry.id,
                    result.error or "Unknown delivery error",
                    retryable=result.retryable,
                )
            await session.commit()
        return status


    # ──────────────────────────────────────────────────────────────
    # Inspection and retention
    # ──────────────────────────────────────────────────────────────

    async def get_status(self, notification_id: str) -> Sequence[NotificationOutbox]:
        async with self._session_factory() as session:
            return await self.repository.get_status(session, notification_id)

    async def outbox_depth(self, adapter: str | None = None) -> int:
        async with self._session_factory() as session:
            return await self.repository.count_pending(session, adapter)

    async def cleanup_delivered(self, older_than_days: int = 7) -> CleanupResult:
        async with self._session_factory() as session:
            result = await self.repository.cleanup_delivered(session, older_than_days=older_than_days)
            await session.commit()
        metrics.delivery_cleanup_deleted_total.labels(status="delivered").inc(result.deleted)
        return result

    async def cleanup_failed(self, older_than_days: int = 30) -> CleanupResult:
        async with self._session_factory() as session:
            result = await self.repository.cleanup_failed(session, older_than_days=older_than_days)
            await session.commit()
        metrics.delivery_cleanup_deleted_total.labels(status="failed").inc(result.deleted)
        return result


__all__ = ["BatchResult", "DeliveryService", "ImmediateResult"]
