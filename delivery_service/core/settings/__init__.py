"""Modular Pydantic Settings v2 configuration.

One settings class per concern, each with its own environment prefix
(APP_, DB_, LOG_, WS_, DELIVERY_, PUSH_), loaded once through LRU-cached
loaders and frozen after validation.
"""

from __future__ import annotations

from .app import AppSettings
from .delivery import DeliverySettings
from .loader import (
    clear_settings_cache,
    get_app_settings,
    get_db_settings,
    get_delivery_settings,
    get_logging_settings,
    get_push_settings,
    get_websocket_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .push import PushSettings
from .unified import Settings, get_settings
from .websocket import WebSocketSettings

__all__ = [
    "AppSettings",
    "DeliverySettings",
    "LoggingSettings",
    "PostgresSettings",
    "PushSettings",
    "Settings",
    "WebSocketSettings",
    "clear_settings_cache",
    "get_app_settings",
    "get_db_settings",
    "get_delivery_settings",
    "get_logging_settings",
    "get_push_settings",
    "get_settings",
    "get_websocket_settings",
]
