"""WebSocket connection manager lifespan management."""

from __future__ import annotations

import logging

from delivery_service.core.settings import WebSocketSettings
from delivery_service.infra.realtime import start_connection_manager, stop_connection_manager

from .registry import lifespan_registry

logger = logging.getLogger(__name__)

_websocket_enabled = False


@lifespan_registry.register(name="realtime", startup_order=20, requires=["core"])
async def startup_realtime(ws_settings: WebSocketSettings, **kwargs: object) -> None:
    """Start the connection manager unless realtime is disabled."""
    global _websocket_enabled

    _websocket_enabled = False
    if not ws_settings.enabled:
        logger.info("Realtime sockets disabled")
        return

    try:
        await start_connection_manager()
        _websocket_enabled = True
        logger.info("WebSocket connection manager initialized", extra={"path": ws_settings.path})
    except Exception as e:
        logger.warning(
            "Failed to start WebSocket manager, realtime delivery disabled",
            extra={"error": str(e)},
        )


@lifespan_registry.register(name="realtime")
async def shutdown_realtime(**kwargs: object) -> None:
    global _websocket_enabled

    if _websocket_enabled:
        await stop_connection_manager()
        _websocket_enabled = False
        logger.info("WebSocket connection manager stopped")


def get_websocket_enabled() -> bool:
    return _websocket_enabled
