"""WebSocket message schemas for the notification socket."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ClientMessageType(StrEnum):
    PING = "ping"
    PONG = "pong"


class ConnectedMessage(BaseModel):
    """Sent once after the socket is accepted."""

    type: Literal["connected"] = "connected"
    connection_id: str
    user_id: str


class ServerPongMessage(BaseModel):
    type: Literal["pong"] = "pong"


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    code: str
    message: str


class NotificationMessage(BaseModel):
    """Shape of a delivered notification frame."""

    type: Literal["notification"] = "notification"
    notification_id: str
    data: dict[str, Any] = Field(default_factory=dict)
