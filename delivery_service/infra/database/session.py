"""Database engine and session management (psycopg3 or aiosqlite)."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from delivery_service.core.settings import get_app_settings, get_db_settings
from delivery_service.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

db_settings = get_db_settings()
app_settings = get_app_settings()

engine_kwargs = db_settings.sqlalchemy_engine_kwargs()
engine_kwargs["echo"] = engine_kwargs.get("echo", False) or app_settings.debug
engine = create_async_engine(db_settings.effective_url, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

_tables_ensured = False


async def _ensure_delivery_tables() -> None:
    """Create the tables this service owns if migrations haven't run yet.

    On the SQLite fallback every mapped table is created, including the
    notifications table that PostgreSQL deployments receive from the
    notification store's own migrations.
    """
    global _tables_ensured
    if _tables_ensured:
        return

    from delivery_service.core.database import Base
    from delivery_service.features.delivery.models import NotificationOutbox
    from delivery_service.features.device_tokens.models import DeviceToken

    async with engine.begin() as conn:
        if engine.dialect.name == "sqlite":
            await conn.run_sync(Base.metadata.create_all)
        else:
            for model in (NotificationOutbox, DeviceToken):
                await conn.run_sync(
                    lambda sync_conn, m=model: cast("Any", m.__table__).create(
                        bind=sync_conn, checkfirst=True
                    )
                )

    _tables_ensured = True


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield a session that is closed on exit.

    Example:
        async with get_async_session() as session:
            entries = await OutboxRepository().get_status(session, "n-1")
    """
    async with AsyncSessionLocal() as session:
        yield session


@retry(
    max_attempts=db_settings.startup_retry_attempts,
    initial_delay=db_settings.startup_retry_delay,
    max_delay=30.0,
    exponential_base=2.0,
    jitter=True,
    stop_after_delay=db_settings.startup_retry_timeout,
)
async def init_database() -> None:
    """Verify connectivity with retry and ensure delivery tables exist.

    Raises:
        RetryError: If the database stays unreachable after all attempts.
    """
    logger.info(
        "Initializing database connection",
        extra={
            "dialect": engine.dialect.name,
            "max_attempts": db_settings.startup_retry_attempts,
        },
    )
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    await _ensure_delivery_tables()
    logger.info(
        "Database connection established",
        extra={"dialect": engine.dialect.name, "driver": engine.dialect.driver},
    )


async def close_database() -> None:
    """Dispose the engine's connection pool."""
    logger.info("Closing database connection")
    await engine.dispose()
    logger.info("Database connection closed")


__all__ = [
    "AsyncSessionLocal",
    "close_database",
    "engine",
    "get_async_session",
    "init_database",
]
