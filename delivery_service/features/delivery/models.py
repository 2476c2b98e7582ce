"""Notification outbox model.

One row per (notification, adapter) pair records that the notification
must eventually be delivered through that adapter. Rows start ``pending``
and end ``delivered`` or ``failed``; the worker moves them, the retention
job removes them.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from delivery_service.core.database.base import Base, UTCDateTime, utcnow

OUTBOX_ID_PREFIX = "outbox_"


class OutboxStatus(StrEnum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


def new_outbox_id() -> str:
    """``outbox_`` followed by 32 hex characters."""
    return f"{OUTBOX_ID_PREFIX}{uuid4().hex}"


class NotificationOutbox(Base):
    """Delivery obligation of one notification through one adapter.

    Attributes:
        id: ``outbox_<32 hex>`` identifier
        notification_id: Opaque reference into the notification store
        adapter: Registered adapter name (``realtime``, ``push``)
        status: pending, delivered or failed
        attempts: Delivery attempts made so far
        last_error: Error text of the most recent failed attempt
        next_attempt_at: Earliest time the row is eligible for a batch
        delivered_at: Set exactly when the row becomes delivered
        created_at: Enqueue time, also the FIFO key within an adapter
    """

    __tablename__ = "notification_outbox"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=new_outbox_id)
    notification_id: Mapped[str] = mapped_column(String(64), nullable=False)
    adapter: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OutboxStatus.PENDING.value,
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_attempt_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    delivered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("notification_id", "adapter"),
        CheckConstraint("status IN ('pending', 'delivered', 'failed')", name="status"),
        CheckConstraint("attempts >= 0", name="attempts_non_negative"),
        Index("ix_notification_outbox_pending", "adapter", "status", "next_attempt_at"),
        Index("ix_notification_outbox_notification_id", "notification_id"),
    )

    def __repr__(self) -> str:
        return (
            f"NotificationOutbox(id={self.id!r}, notification_id={self.notification_id!r}, "
            f"adapter={self.adapter!r}, status={self.status}, attempts={self.attempts})"
        )


__all__ = ["OUTBOX_ID_PREFIX", "NotificationOutbox", "OutboxStatus", "new_outbox_id"]
