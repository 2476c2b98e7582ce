"""Notification records owned by the notification store.

This service never writes to the table. It joins against it when the
worker needs the current content of a notification, so a notification
deleted upstream simply stops appearing in pending batches.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, String, false
from sqlalchemy.orm import Mapped, mapped_column

from delivery_service.core.database.base import Base, UTCDateTime, utcnow


class Notification(Base):
    """A notification addressed to one recipient."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    sub_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def to_payload(self) -> dict[str, Any]:
        """Content handed to delivery adapters alongside the notification id."""
        return {
            "type": self.notification_type,
            "actor_id": self.actor_id,
            "subject_id": self.subject_id,
            "sub_type": self.sub_type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"Notification(id={self.id!r}, recipient_id={self.recipient_id!r}, "
            f"type={self.notification_type!r})"
        )


__all__ = ["Notification"]
