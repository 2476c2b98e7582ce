"""WebSocket endpoint delivering notifications to connected users.

Endpoint:
- /ws/notifications?user_id=<id>: one socket per device; a user may hold several

Message protocol:
    Client -> Server:
    - {"type": "ping"}
    - {"type": "pong"}

    Server -> Client:
    - {"type": "connected", "connection_id": "...", "user_id": "..."}
    - {"type": "notification", "notification_id": "...", "data": {...}}
    - {"type": "ping"} / {"type": "pong"}
    - {"type": "error", "code": "...", "message": "..."}
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from delivery_service.core.settings import get_websocket_settings
from delivery_service.features.realtime.schemas import (
    ClientMessageType,
    ConnectedMessage,
    ErrorMessage,
    ServerPongMessage,
)
from delivery_service.infra.realtime import get_connection_manager

if TYPE_CHECKING:
    from delivery_service.infra.realtime import ConnectionManager

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])

ws_settings = get_websocket_settings()


def _get_manager_safe() -> ConnectionManager | None:
    try:
        return get_connection_manager()
    except RuntimeError:
        return None


@router.websocket(ws_settings.path)
async def notification_socket(
    websocket: WebSocket,
    user_id: Annotated[str, Query(min_length=1, max_length=64, description="Recipient identifier")],
) -> None:
    """Register the socket for ``user_id`` and keep it open until the client leaves."""
    if not ws_settings.enabled:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason="WebSocket disabled")
        return

    manager = _get_manager_safe()
    if manager is None or not manager.is_running:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason="Server not ready")
        return

    connection_id: str | None = None
    try:
        connection_id = await manager.connect(websocket, user_id=user_id)
        await websocket.send_json(
            ConnectedMessage(connection_id=connection_id, user_id=user_id).model_dump()
        )
        await _handle_messages(websocket, connection_id, manager)

    except ConnectionRefusedError as e:
        logger.warning("WebSocket connection refused", extra={"reason": str(e), "user_id": user_id})
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason=str(e))

    except WebSocketDisconnect:
        logger.debug("WebSocket client disconnected", extra={"user_id": user_id})

    except Exception as e:
        logger.exception("WebSocket error", extra={"error": str(e), "user_id": user_id})

    finally:
        if connection_id is not None:
            await manager.disconnect(connection_id)


async def _handle_messages(
    websocket: WebSocket,
    connection_id: str,
    manager: ConnectionManager,
) -> None:
    async for raw_message in websocket.iter_text():
        manager.touch(connection_id)
        try:
            message = json.loads(raw_message)
        except json.JSONDecodeError:
            await websocket.send_json(
                ErrorMessage(code="invalid_json", message="Message is not valid JSON").model_dump()
            )
            continue

        msg_type = message.get("type") if isinstance(message, dict) else None
        if msg_type == ClientMessageType.PING:
            await websocket.send_json(ServerPongMessage().model_dump())
        elif msg_type == ClientMessageType.PONG:
            continue
        else:
            await websocket.send_json(
                ErrorMessage(code="unknown_type", message=f"Unknown message type: {msg_type}").model_dump()
            )
