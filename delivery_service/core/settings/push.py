"""Push gateway settings."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class PushSettings(BaseSettings):
    """Push gateway client configuration.

    Environment variables use PUSH_ prefix.
    Example: PUSH_ENABLED=false, PUSH_API_KEY=..., PUSH_CREDENTIALS_FILE=/run/secrets/push.json

    Absent credentials are not an error: the push transport simply reports
    itself unavailable and is left out of the adapter registry.
    """

    enabled: bool = Field(default=True, description="Master switch for push delivery")
    gateway_url: str = Field(
        default="https://push.example.invalid/v1/messages:send",
        description="HTTP endpoint accepting data-only push messages",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Inline gateway credential",
    )
    credentials_file: Path | None = Field(
        default=None,
        description="JSON file with an api_key (and optionally gateway_url)",
    )
    timeout: float = Field(default=10.0, ge=0.5, le=120.0, description="Request timeout in seconds")

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def has_credentials(self) -> bool:
        """Whether any credential source is configured."""
        return self.api_key is not None or self.credentials_file is not None

    def load_credentials(self) -> tuple[str, str]:
        """Resolve (gateway_url, api_key).

        The credentials file wins over inline values when both are set.

        Raises:
            OSError: If the credentials file cannot be read.
            ValueError: If no api key can be resolved.
        """
        url = self.gateway_url
        key = self.api_key.get_secret_value() if self.api_key else None

        if self.credentials_file is not None:
            data = json.loads(self.credentials_file.read_text(encoding="utf-8"))
            url = data.get("gateway_url", url)
            key = data.get("api_key", key)

        if not key:
            msg = "Push credentials do not contain an api_key"
            raise ValueError(msg)
        return url, key
