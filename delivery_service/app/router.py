"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delivery_service.core.settings import get_app_settings, get_websocket_settings
from delivery_service.features.delivery.router import router as delivery_router
from delivery_service.features.device_tokens.router import router as device_tokens_router
from delivery_service.features.health.router import router as health_router
from delivery_service.features.metrics.router import router as metrics_router
from delivery_service.features.realtime.router import router as realtime_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from delivery_service.core.settings import AppSettings, WebSocketSettings

logger = logging.getLogger(__name__)


def setup_routers(
    app: FastAPI,
    app_settings: AppSettings | None = None,
    websocket_settings: WebSocketSettings | None = None,
) -> None:
    """Register feature routers.

    ``/health``, ``/metrics`` and the notification socket are mounted at the
    root; the JSON API lives under ``api_prefix``.
    """
    app_settings = app_settings or get_app_settings()
    websocket_settings = websocket_settings or get_websocket_settings()
    api_prefix = app_settings.api_prefix

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(delivery_router, prefix=api_prefix)
    app.include_router(device_tokens_router, prefix=api_prefix)

    if websocket_settings.enabled:
        app.include_router(realtime_router)
        logger.debug("Realtime socket mounted", extra={"path": websocket_settings.path})
