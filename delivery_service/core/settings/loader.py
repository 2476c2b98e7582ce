"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from delivery_service.core.settings.loader import get_delivery_settings

    settings = get_delivery_settings()

Testing:
    In tests, clear the cache to force reload:
    get_delivery_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .delivery import DeliverySettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .push import PushSettings
from .websocket import WebSocketSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Get cached database settings."""
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_websocket_settings() -> WebSocketSettings:
    """Get cached WebSocket settings."""
    return WebSocketSettings()


@lru_cache(maxsize=1)
def get_delivery_settings() -> DeliverySettings:
    """Get cached delivery worker settings."""
    return DeliverySettings()


@lru_cache(maxsize=1)
def get_push_settings() -> PushSettings:
    """Get cached push gateway settings."""
    return PushSettings()


def clear_settings_cache() -> None:
    """Drop every cached settings instance (tests and reload tooling)."""
    for loader in (
        get_app_settings,
        get_db_settings,
        get_logging_settings,
        get_websocket_settings,
        get_delivery_settings,
        get_push_settings,
    ):
        loader.cache_clear()
