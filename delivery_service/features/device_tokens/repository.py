"""Repository for device token registration and lookup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from delivery_service.core.database.base import utcnow
from delivery_service.core.database.repository import BaseRepository
from delivery_service.features.device_tokens.models import DeviceToken

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class DeviceTokenRepository(BaseRepository[DeviceToken]):
    """Token CRUD keyed by the token string."""

    def __init__(self) -> None:
        super().__init__(DeviceToken)

    async def register(
        self,
        session: AsyncSession,
        user_id: str,
        token: str,
        *,
        platform: str | None = None,
    ) -> DeviceToken:
        """Create or re-own a token and bump its ``updated_at``.

        Args:
            session: Database session
            user_id: Owner of the device
            token: Opaque push token issued to the device
            platform: Optional client platform label

        Returns:
            The stored token row
        """
        existing = await self.get_by(session, DeviceToken.token, token)
        if existing is None:
            return await self.create(
                session,
                DeviceToken(user_id=user_id, token=token, platform=platform),
            )

        if existing.user_id != user_id:
            logger.info(
                "Device token re-assigned",
                extra={
                    "token_id": existing.id,
                    "previous_user_id": existing.user_id,
                    "user_id": user_id,
                },
            )
        existing.user_id = user_id
        existing.platform = platform or existing.platform
        existing.updated_at = utcnow()
        await session.flush()
        return existing

    async def unregister(self, session: AsyncSession, user_id: str, token: str) -> bool:
        """Delete ``token`` if ``user_id`` owns it. Returns whether a row was removed."""
        stmt = (
            delete(DeviceToken)
            .where(DeviceToken.user_id == user_id, DeviceToken.token == token)
            .returning(DeviceToken.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return len(result.scalars().all()) > 0

    async def latest_token(self, session: AsyncSession, user_id: str) -> str | None:
        """Most recently registered or refreshed token for ``user_id``."""
        stmt = (
            select(DeviceToken.token)
            .where(DeviceToken.user_id == user_id)
            .order_by(DeviceToken.updated_at.desc(), DeviceToken.id.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(self, session: AsyncSession, user_id: str) -> Sequence[DeviceToken]:
        stmt = (
            select(DeviceToken)
            .where(DeviceToken.user_id == user_id)
            .order_by(DeviceToken.updated_at.desc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()


__all__ = ["DeviceTokenRepository"]
