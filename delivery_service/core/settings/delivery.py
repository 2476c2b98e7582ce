"""Delivery worker and outbox policy settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeliverySettings(BaseSettings):
    """Outbox worker, retry and retention configuration.

    Environment variables use DELIVERY_ prefix.
    Example: DELIVERY_INTERVAL_MS=5000, DELIVERY_MAX_ATTEMPTS=5
    """

    # ──────────────────────────────────────────────────────────────
    # Worker
    # ──────────────────────────────────────────────────────────────

    worker_enabled: bool = Field(
        default=True,
        description="Run the background delivery worker inside the API process",
    )
    interval_ms: int = Field(
        default=5000,
        ge=100,
        le=600_000,
        description="Milliseconds between worker ticks",
    )
    batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum outbox rows processed per adapter per tick",
    )

    # ──────────────────────────────────────────────────────────────
    # Retry policy
    # ──────────────────────────────────────────────────────────────

    max_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Retryable failures after which a row becomes permanently failed",
    )
    backoff_base_seconds: float = Field(
        default=60.0,
        ge=0,
        le=86400,
        description="Delay before the second attempt",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Growth factor applied per additional failed attempt",
    )
    backoff_max_seconds: float = Field(
        default=3600.0,
        ge=0,
        le=7 * 86400,
        description="Upper bound for a single backoff delay",
    )
    error_max_length: int = Field(
        default=1000,
        ge=50,
        le=10000,
        description="Stored last_error text is truncated to this many characters",
    )

    # ──────────────────────────────────────────────────────────────
    # Retention and monitoring
    # ──────────────────────────────────────────────────────────────

    delivered_retention_days: int = Field(default=7, ge=1, le=3650)
    failed_retention_days: int = Field(default=30, ge=1, le=3650)
    cleanup_interval_seconds: int = Field(
        default=3600,
        ge=60,
        le=86400 * 7,
        description="Seconds between retention cleanup runs",
    )
    backlog_warning_threshold: int = Field(
        default=1000,
        ge=1,
        description="Pending rows above which a backlog near-miss warning is logged",
    )

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def interval_seconds(self) -> float:
        """Worker tick interval in seconds."""
        return self.interval_ms / 1000
