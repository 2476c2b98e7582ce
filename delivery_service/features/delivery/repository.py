"""Repository for the notification outbox.

Provides methods for:
- Idempotent enqueueing of (notification, adapter) pairs
- Fetching due pending rows joined with current notification content
- Recording delivery outcomes with bounded, backed-off retries
- Retention cleanup and backlog monitoring

Every state change is a conditional update on ``status = 'pending'``, so
a row that already reached a terminal state is never touched again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from delivery_service.core.database.base import utcnow
from delivery_service.core.database.repository import BaseRepository
from delivery_service.features.delivery.models import (
    NotificationOutbox,
    OutboxStatus,
    new_outbox_id,
)
from delivery_service.features.notifications.models import Notification
from delivery_service.utils.retry import RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from delivery_service.core.settings import DeliverySettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_ERROR_MAX_LENGTH = 1000


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of ``enqueue``: ``enqueued`` is False when the pair already existed."""

    enqueued: bool
    id: str


@dataclass(frozen=True, slots=True)
class PendingDelivery:
    """A due outbox row together with the notification it refers to."""

    id: str
    notification_id: str
    adapter: str
    attempts: int
    recipient_id: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CleanupResult:
    deleted: int


def default_backoff() -> RetryStrategy:
    """60s, 120s, 240s ... capped at one hour."""
    return RetryStrategy(initial_delay=60.0, max_delay=3600.0, exponential_base=2.0, jitter=False)


class OutboxRepository(BaseRepository[NotificationOutbox]):
    """Outbox operations used by the delivery service and worker.

    Args:
        max_attempts: Retryable failures after which a row becomes failed
        backoff: Delay schedule; ``delay_after(n)`` is the wait after the
            n-th failed attempt
        error_max_length: ``last_error`` is truncated to this length
    """

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: RetryStrategy | None = None,
        error_max_length: int = DEFAULT_ERROR_MAX_LENGTH,
    ) -> None:
        super().__init__(NotificationOutbox)
        self.max_attempts = max_attempts
        self.backoff = backoff or default_backoff()
        self.error_max_length = error_max_length

    @classmethod
    def from_settings(cls, settings: DeliverySettings) -> OutboxRepository:
        return cls(
            max_attempts=settings.max_attempts,
            backoff=RetryStrategy(
                initial_delay=settings.backoff_base_seconds,
                max_delay=settings.backoff_max_seconds,
                exponential_base=settings.backoff_multiplier,
                jitter=False,
            ),
            error_max_length=settings.error_max_length,
        )

    # ──────────────────────────────────────────────────────────────
    # Enqueue
    # ──────────────────────────────────────────────────────────────

    async def enqueue(
        self,
        session: AsyncSession,
        notification_id: str,
        adapter: str,
    ) -> EnqueueResult:
        """Insert a pending row for (notification_id, adapter) unless one exists.

        A duplicate leaves the existing row, whatever its status, untouched.

        Args:
            session: Database session
            notification_id: Notification to deliver
            adapter: Adapter name

        Returns:
            EnqueueResult with the id of the new or existing row
        """
        now = utcnow()
        values = {
            "id": new_outbox_id(),
            "notification_id": notification_id,
            "adapter": adapter,
            "status": OutboxStatus.PENDING.value,
            "attempts": 0,
            "next_attempt_at": now,
            "created_at": now,
        }
        dialect = session.get_bind().dialect.name

        if dialect in {"postgresql", "sqlite"}:
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = (
                insert(NotificationOutbox)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["notification_id", "adapter"])
                .returning(NotificationOutbox.id)
            )
            inserted_id = (await session.execute(stmt)).scalar_one_or_none()
            if inserted_id is not None:
                return EnqueueResult(enqueued=True, id=inserted_id)
        else:
            try:
                async with session.begin_nested():
                    session.add(NotificationOutbox(**values))
                return EnqueueResult(enqueued=True, id=values["id"])
            except IntegrityError:
                pass

        existing_id = await self._find_id(session, notification_id, adapter)
        if existing_id is None:
            msg = f"Outbox row for {notification_id}/{adapter} vanished after conflict"
            raise RuntimeError(msg)
        self._lazy.debug(
            lambda: f"outbox.enqueue: duplicate {notification_id}/{adapter} -> {existing_id}"
        )
        return EnqueueResult(enqueued=False, id=existing_id)

    async def _find_id(self, session: AsyncSession, notification_id: str, adapter: str) -> str | None:
        stmt = select(NotificationOutbox.id).where(
            NotificationOutbox.notification_id == notification_id,
            NotificationOutbox.adapter == adapter,
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    # ──────────────────────────────────────────────────────────────
    # Worker queries
    # ──────────────────────────────────────────────────────────────

    async def fetch_pending(
        self,
        session: AsyncSession,
        adapter: str,
        *,
        batch_size: int = 50,
    ) -> list[PendingDelivery]:
        """Fetch due pending rows for ``adapter``, oldest first.

        Rows whose notification no longer exists are left out; they stay
        pending until retention or an operator removes them.

        Args:
            session: Database session
            adapter: Adapter name
            batch_size: Maximum rows to return

        Returns:
            Due rows joined with recipient and notification payload
        """
        stmt = (
            select(NotificationOutbox, Notification)
            .join(Notification, Notification.id == NotificationOutbox.notification_id)
            .where(
                NotificationOutbox.adapter == adapter,
                NotificationOutbox.status == OutboxStatus.PENDING.value,
                NotificationOutbox.next_attempt_at <= utcnow(),
            )
            .order_by(NotificationOutbox.created_at.asc(), NotificationOutbox.id.asc())
            .limit(batch_size)
            # Use FOR UPDATE SKIP LOCKED for concurrent workers
            .with_for_update(skip_locked=True, of=NotificationOutbox)
        )
        result = await session.execute(stmt)
        return [
            PendingDelivery(
                id=entry.id,
                notification_id=entry.notification_id,
                adapter=entry.adapter,
                attempts=entry.attempts,
                recipient_id=notification.recipient_id,
                payload=notification.to_payload(),
            )
            for entry, notification in result.tuples().all()
        ]

    async def mark_delivered(self, session: AsyncSession, entry_id: str) -> bool:
        """Record a successful attempt.

        Returns:
            True if the row transitioned, False if it was already terminal
            or does not exist
        """
        stmt = (
            update(NotificationOutbox)
            .where(
                NotificationOutbox.id == entry_id,
                NotificationOutbox.status == OutboxStatus.PENDING.value,
            )
            .values(
                status=OutboxStatus.DELIVERED.value,
                delivered_at=utcnow(),
                attempts=NotificationOutbox.attempts + 1,
            )
            .returning(NotificationOutbox.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def mark_failed(
        self,
        session: AsyncSession,
        entry_id: str,
        error: str,
        *,
        retryable: bool,
    ) -> OutboxStatus | None:
        """Record a failed attempt.

        A retryable failure keeps the row pending with a backed-off
        ``next_attempt_at`` until ``max_attempts`` is reached; a
        non-retryable failure is terminal immediately.

        Args:
            session: Database session
            entry_id: Outbox row id
            error: Error text, truncated before storing
            retryable: Whether a later attempt could succeed

        Returns:
            The row's new status, or None if the row was missing, already
            terminal, or changed concurrently
        """
        stmt = select(NotificationOutbox.attempts, NotificationOutbox.status).where(
            NotificationOutbox.id == entry_id
        )
        row = (await session.execute(stmt)).one_or_none()
        if row is None or row.status != OutboxStatus.PENDING.value:
            return None

        attempts = row.attempts + 1
        now = utcnow()
        values: dict[str, Any] = {
            "attempts": attempts,
            "last_error": self.truncate_error(error),
        }
        if retryable and attempts < self.max_attempts:
            new_status = OutboxStatus.PENDING
            values["next_attempt_at"] = now + self.backoff.delay_after(attempts)
        else:
            new_status = OutboxStatus.FAILED
        values["status"] = new_status.value

        stmt_update = (
            update(NotificationOutbox)
            .where(
                NotificationOutbox.id == entry_id,
                NotificationOutbox.status == OutboxStatus.PENDING.value,
                NotificationOutbox.attempts == row.attempts,
            )
            .values(**values)
            .returning(NotificationOutbox.id)
            .execution_options(synchronize_session=False)
        )
        if (await session.execute(stmt_update)).scalar_one_or_none() is None:
            logger.warning(
                "Outbox row changed concurrently, failure not recorded",
                extra={"outbox_id": entry_id},
            )
            return None
        return new_status

    def truncate_error(self, error: str) -> str:
        return error[: self.error_max_length]

    # ──────────────────────────────────────────────────────────────
    # Queries, retention and monitoring
    # ──────────────────────────────────────────────────────────────

    async def get_status(
        self,
        session: AsyncSession,
        notification_id: str,
    ) -> Sequence[NotificationOutbox]:
        """All outbox rows of a notification, one per adapter."""
        stmt = (
            select(NotificationOutbox)
            .where(NotificationOutbox.notification_id == notification_id)
            .order_by(NotificationOutbox.adapter.asc())
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def cleanup_delivered(
        self,
        session: AsyncSession,
        *,
        older_than_days: int = 7,
    ) -> CleanupResult:
        """Delete delivered rows whose ``delivered_at`` is older than the cutoff."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        stmt = (
            delete(NotificationOutbox)
            .where(
                NotificationOutbox.status == OutboxStatus.DELIVERED.value,
                NotificationOutbox.delivered_at < cutoff,
            )
            .returning(NotificationOutbox.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return CleanupResult(deleted=len(result.scalars().all()))

    async def cleanup_failed(
        self,
        session: AsyncSession,
        *,
        older_than_days: int = 30,
    ) -> CleanupResult:
        """Delete failed rows created before the cutoff."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        stmt = (
            delete(NotificationOutbox)
            .where(
                NotificationOutbox.status == OutboxStatus.FAILED.value,
                NotificationOutbox.created_at < cutoff,
            )
            .returning(NotificationOutbox.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return CleanupResult(deleted=len(result.scalars().all()))

    async def count_pending(self, session: AsyncSession, adapter: str | None = None) -> int:
        """Count pending rows, optionally for one adapter."""
        stmt = (
            select(func.count())
            .select_from(NotificationOutbox)
            .where(NotificationOutbox.status == OutboxStatus.PENDING.value)
        )
        if adapter is not None:
            stmt = stmt.where(NotificationOutbox.adapter == adapter)
        result = await session.execute(stmt)
        return result.scalar_one()


__all__ = [
    "CleanupResult",
    "EnqueueResult",
    "OutboxRepository",
    "PendingDelivery",
    "default_backoff",
]
