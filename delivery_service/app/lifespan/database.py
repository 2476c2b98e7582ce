"""Database connection lifespan management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delivery_service.infra.database.session import close_database, init_database

from .registry import lifespan_registry

if TYPE_CHECKING:
    from fastapi import FastAPI

    from delivery_service.core.settings import PostgresSettings

logger = logging.getLogger(__name__)


@lifespan_registry.register(name="database", startup_order=10, requires=["core"])
async def startup_database(app: FastAPI, db_settings: PostgresSettings, **kwargs: object) -> None:
    """Verify connectivity and create the delivery tables if needed.

    With ``startup_require_db`` unset the service starts degraded: the
    delivery worker stays stopped and ``app.state.database_ready`` is False.
    """
    app.state.database_ready = False
    if not db_settings.is_configured:
        logger.info("PostgreSQL not configured, using SQLite fallback")

    try:
        await init_database()
    except Exception as e:
        if db_settings.startup_require_db:
            logger.exception(
                "Database required but unavailable, failing startup",
                extra={"error": str(e), "startup_require_db": True},
            )
            raise
        logger.warning(
            "Database unavailable, continuing in degraded mode",
            extra={"error": str(e), "startup_require_db": False},
        )
        return

    app.state.database_ready = True
    logger.info("Database connection initialized")


@lifespan_registry.register(name="database")
async def shutdown_database(**kwargs: object) -> None:
    await close_database()
