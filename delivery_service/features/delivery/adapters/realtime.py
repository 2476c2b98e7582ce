"""Realtime delivery over the local WebSocket connection manager."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from delivery_service.features.delivery.adapters.base import DeliveryAdapter, DeliveryResult
from delivery_service.features.delivery.observability import DeliveryEvents
from delivery_service.infra.realtime import get_connection_manager

if TYPE_CHECKING:
    from collections.abc import Callable

    from delivery_service.infra.realtime import ConnectionManager

logger = logging.getLogger(__name__)

REALTIME_ADAPTER_NAME = "realtime"


def _current_manager() -> ConnectionManager | None:
    try:
        return get_connection_manager()
    except RuntimeError:
        return None


class RealtimeAdapter(DeliveryAdapter):
    """Push a notification to every socket the recipient holds on this instance.

    A recipient without sockets is a permanent failure for this row: the
    client fetches missed notifications on reconnect, so the outbox does
    not keep retrying an offline user.

    Args:
        manager_provider: Returns the running connection manager, or None
            when realtime is disabled or not started yet
        events: Observability sink
    """

    name = REALTIME_ADAPTER_NAME

    def __init__(
        self,
        manager_provider: Callable[[], ConnectionManager | None] = _current_manager,
        events: DeliveryEvents | None = None,
    ) -> None:
        self._manager_provider = manager_provider
        self._events = events or DeliveryEvents()

    async def is_ready(self) -> bool:
        manager = self._manager_provider()
        return manager is not None and manager.is_running

    async def deliver(
        self,
        notification_id: str,
        recipient_id: str,
        payload: dict[str, Any],
    ) -> DeliveryResult:
        try:
            manager = self._manager_provider()
            if manager is None or not manager.is_running:
                return DeliveryResult.failure("Realtime transport not initialized", retryable=False)

            if not manager.is_user_connected(recipient_id):
                return DeliveryResult.failure("User not connected", retryable=False)

            message = {
                "type": "notification",
                "notification_id": notification_id,
                "data": payload,
            }
            sent = await manager.send_to_user(recipient_id, message)
            if sent == 0:
                return DeliveryResult.failure("Delivery failed - no active sockets", retryable=True)

            self._events.breadcrumb(
                "realtime",
                "Realtime notification sent",
                notification_id=notification_id,
                sockets=sent,
            )
            return DeliveryResult.success()
        except Exception as e:
            self._events.capture_exception(
                e,
                operation="realtime.deliver",
                notification_id=notification_id,
                recipient_id=recipient_id,
            )
            return DeliveryResult.failure(str(e) or type(e).__name__, retryable=True)


__all__ = ["REALTIME_ADAPTER_NAME", "RealtimeAdapter"]
