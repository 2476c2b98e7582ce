"""Generic repository base.

Repositories take the session as an argument and never commit; the caller
owns the transaction. Anything beyond single-row lookups is written against
the session directly in the feature repository.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import select

from delivery_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Lookup and insert helpers shared by feature repositories."""

    __slots__ = ("_lazy", "model")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T | None:
        """First row whose ``attr`` equals ``value``, if any."""
        result = await session.execute(select(self.model).where(attr == value).limit(1))
        row = result.scalars().first()
        self._lazy.debug(
            lambda: f"{self.model.__name__} lookup {attr.key}={value!r}: {'hit' if row else 'miss'}"
        )
        return row

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Insert ``instance`` and load server defaults back onto it."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        self._lazy.debug(
            lambda: f"{self.model.__name__} inserted (id={getattr(instance, 'id', None)})"
        )
        return instance


__all__ = ["BaseRepository"]
