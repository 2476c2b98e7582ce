"""Unified settings composition for convenient access.

Each nested settings class still loads from its own environment prefix.

Usage:
    from delivery_service.core.settings import get_settings

    settings = get_settings()
    print(settings.delivery.batch_size)
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .app import AppSettings
from .delivery import DeliverySettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .push import PushSettings
from .websocket import WebSocketSettings


class Settings(BaseSettings):
    """Unified settings composing all domain settings."""

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    app: AppSettings = Field(default_factory=AppSettings)
    db: PostgresSettings = Field(default_factory=PostgresSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    websocket: WebSocketSettings = Field(default_factory=WebSocketSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    push: PushSettings = Field(default_factory=PushSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get unified settings instance (cached)."""
    return Settings()
