"""Token lookup callable handed to the push adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from delivery_service.features.device_tokens.repository import DeviceTokenRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class DeviceTokenLookup:
    """Resolve a recipient's current device token in its own short session.

    Example:
        lookup = DeviceTokenLookup(AsyncSessionLocal)
        token = await lookup("user-1")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: DeviceTokenRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._repository = repository or DeviceTokenRepository()

    async def __call__(self, user_id: str) -> str | None:
        async with self._session_factory() as session:
            return await self._repository.latest_token(session, user_id)


__all__ = ["DeviceTokenLookup"]
