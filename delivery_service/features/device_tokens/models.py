"""Device tokens registered by client apps for push delivery."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from delivery_service.core.database.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid4())


class DeviceToken(Base, TimestampMixin):
    """A push token owned by one user.

    A token is globally unique: registering a token that already belongs
    to another user moves it to the new owner.
    """

    __tablename__ = "device_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    token: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    platform: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Client platform (ios, android, web)",
    )

    __table_args__ = (Index("ix_device_tokens_user_updated", "user_id", "updated_at"),)

    def __repr__(self) -> str:
        return f"DeviceToken(id={self.id!r}, user_id={self.user_id!r}, platform={self.platform!r})"


__all__ = ["DeviceToken"]
