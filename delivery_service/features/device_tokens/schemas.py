"""Pydantic schemas for the device token endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DeviceTokenRegister(BaseModel):
    """Payload for registering a device token."""

    token: str = Field(..., min_length=1, max_length=512, description="Push token issued to the device")
    platform: str | None = Field(
        default=None,
        pattern=r"^(ios|android|web)$",
        description="Client platform",
    )


class DeviceTokenUnregister(BaseModel):
    """Payload for removing a device token."""

    token: str = Field(..., min_length=1, max_length=512)


class DeviceTokenResponse(BaseModel):
    """A stored device token."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    token: str
    platform: str | None
    created_at: datetime
    updated_at: datetime
