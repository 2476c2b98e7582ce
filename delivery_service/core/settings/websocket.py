"""WebSocket configuration settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebSocketSettings(BaseSettings):
    """Realtime notification socket settings.

    Environment variables use WS_ prefix.
    Example: WS_HEARTBEAT_INTERVAL=30
    """

    enabled: bool = Field(default=True, description="Enable the realtime socket endpoint")
    path: str = Field(
        default="/ws/notifications",
        pattern=r"^/.*$",
        description="Mount path of the notification socket",
    )

    # ──────────────────────────────────────────────────────────────
    # Connection limits
    # ──────────────────────────────────────────────────────────────

    max_connections: int = Field(
        default=10000,
        ge=1,
        le=100000,
        description="Maximum concurrent WebSocket connections per instance",
    )
    max_connections_per_user: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum connections per user ID",
    )

    # ──────────────────────────────────────────────────────────────
    # Heartbeat and timeout settings
    # ──────────────────────────────────────────────────────────────

    heartbeat_interval: float = Field(
        default=30.0,
        ge=0,
        le=300,
        description="Interval between ping messages in seconds (0 to disable)",
    )
    connection_timeout: float = Field(
        default=60.0,
        ge=0,
        le=600,
        description="Close connections after this many seconds without pong (0 to disable)",
    )

    model_config = SettingsConfigDict(
        env_prefix="WS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
