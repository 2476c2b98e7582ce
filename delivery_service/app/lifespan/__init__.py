"""Application lifespan management.

Importing the hook modules registers them with ``lifespan_registry``;
``lifespan`` then runs them in dependency order:
core -> database -> realtime -> delivery (shutdown in reverse).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from delivery_service.app.lifespan import core, database, delivery, realtime
from delivery_service.app.lifespan.realtime import get_websocket_enabled
from delivery_service.app.lifespan.registry import lifespan_registry
from delivery_service.core.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

# Ensure modules are imported (for side effects - hook registration)
_ = (core, database, delivery, realtime)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup hooks, serve, then run shutdown hooks."""
    settings = get_settings()
    hook_kwargs = {
        "app": app,
        "app_settings": settings.app,
        "db_settings": settings.db,
        "log_settings": settings.logging,
        "ws_settings": settings.websocket,
        "delivery_settings": settings.delivery,
        "push_settings": settings.push,
    }

    await lifespan_registry.startup(**hook_kwargs)

    worker = getattr(app.state, "delivery_worker", None)
    service = getattr(app.state, "delivery_service", None)
    logger.info(
        "Application startup complete - listening on %s:%s",
        settings.app.host,
        settings.app.port,
        extra={
            "service": settings.app.service_name,
            "environment": settings.app.environment,
            "version": settings.app.version,
            "database": "postgresql" if settings.db.is_configured else "sqlite",
            "websocket_enabled": get_websocket_enabled(),
            "adapters": service.registry.names() if service is not None else [],
            "worker_running": worker is not None and worker.running,
        },
    )

    yield

    logger.info("Application shutting down", extra={"service": settings.app.service_name})
    await lifespan_registry.shutdown(**hook_kwargs)
    logger.info("Application shutdown complete")


__all__ = ["lifespan"]
