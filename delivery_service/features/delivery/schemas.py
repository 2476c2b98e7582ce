"""Pydantic schemas for the delivery endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OutboxEntryResponse(BaseModel):
    """One adapter's delivery state for a notification."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    notification_id: str
    adapter: str
    status: str
    attempts: int
    last_error: str | None = None
    next_attempt_at: datetime
    delivered_at: datetime | None = None
    created_at: datetime


class NotificationDeliveryStatus(BaseModel):
    notification_id: str
    entries: list[OutboxEntryResponse] = Field(default_factory=list)


class WorkerStatusResponse(BaseModel):
    running: bool
    processing: bool
    adapters: list[str] = Field(default_factory=list)
    pending: int | None = Field(default=None, description="Pending outbox rows across adapters")


class ScheduleRequest(BaseModel):
    """Optional realtime hint sent along with a scheduling request.

    With both fields set, an immediate realtime attempt is made after the
    outbox rows are written.
    """

    recipient_id: str | None = Field(default=None, max_length=64)
    payload: dict[str, Any] | None = None


class ScheduleResponse(BaseModel):
    notification_id: str
    adapters: list[str] = Field(default_factory=list, description="Adapters holding an outbox row")
    delivered_now: bool | None = Field(
        default=None, description="Outcome of the immediate attempt, if one was made"
    )
