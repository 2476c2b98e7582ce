"""Database dependencies for FastAPI route handlers.

Route handlers receive a request-scoped session through ``get_db_session``.
CLI commands and the delivery worker use ``get_async_session`` (or a plain
``async_sessionmaker``) directly instead.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_service.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Yield a session that is closed when the request completes."""
    async with get_async_session() as session:
        yield session


DbSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
