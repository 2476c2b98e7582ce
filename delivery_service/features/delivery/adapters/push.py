"""Push delivery through the HTTP push gateway.

The transport initializes lazily on first use. Initialization happens at
most once per adapter: concurrent callers share the same in-flight attempt
and its outcome (client or unavailable) is memoized.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from delivery_service.features.delivery import metrics
from delivery_service.features.delivery.adapters.base import DeliveryAdapter, DeliveryResult
from delivery_service.features.delivery.adapters.gateway import PushGatewayClient, PushMessage
from delivery_service.features.delivery.exceptions import PushGatewayError
from delivery_service.features.delivery.observability import DeliveryEvents

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from delivery_service.core.settings import PushSettings

logger = logging.getLogger(__name__)

PUSH_ADAPTER_NAME = "push"


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_push_message(token: str, notification_id: str, payload: dict[str, Any]) -> PushMessage:
    """Data-only message: ``notification_id`` plus every payload field as a string."""
    data = {"notification_id": notification_id}
    data.update({key: _stringify(value) for key, value in payload.items()})
    return PushMessage(token=token, data=data)


def default_client_factory(url: str, api_key: str, settings: PushSettings) -> PushGatewayClient:
    return PushGatewayClient(url, api_key, timeout=settings.timeout)


class PushAdapter(DeliveryAdapter):
    """Deliver notifications as data-only push messages.

    Args:
        settings: Push gateway settings
        token_lookup: Async callable returning the recipient's latest
            device token, or None
        client_factory: Builds the gateway client from resolved credentials
        events: Observability sink
    """

    name = PUSH_ADAPTER_NAME

    def __init__(
        self,
        settings: PushSettings,
        token_lookup: Callable[[str], Awaitable[str | None]],
        *,
        client_factory: Callable[[str, str, PushSettings], PushGatewayClient] = default_client_factory,
        events: DeliveryEvents | None = None,
    ) -> None:
        self._settings = settings
        self._token_lookup = token_lookup
        self._client_factory = client_factory
        self._events = events or DeliveryEvents()
        self._init_task: asyncio.Task[PushGatewayClient | None] | None = None

    async def initialize(self) -> bool:
        """Initialize the transport once; later calls reuse the outcome."""
        return await self._ensure_client() is not None

    async def _ensure_client(self) -> PushGatewayClient | None:
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        return await asyncio.shield(self._init_task)

    async def _initialize(self) -> PushGatewayClient | None:
        if not self._settings.enabled:
            logger.info("Push delivery disabled")
            metrics.push_initialization_total.labels(outcome="disabled").inc()
            return None

        if not self._settings.has_credentials:
            logger.info("Push credentials not configured, push delivery unavailable")
            metrics.push_initialization_total.labels(outcome="unconfigured").inc()
            return None

        try:
            url, api_key = self._settings.load_credentials()
            client = self._client_factory(url, api_key, self._settings)
        except Exception as e:
            logger.warning(
                "Push transport initialization failed, push delivery unavailable",
                extra={"error": str(e)},
            )
            metrics.push_initialization_total.labels(outcome="error").inc()
            return None

        logger.info("Push transport initialized", extra={"gateway_url": url})
        metrics.push_initialization_total.labels(outcome="ready").inc()
        return client

    async def is_ready(self) -> bool:
        return await self.initialize()

    async def deliver(
        self,
        notification_id: str,
        recipient_id: str,
        payload: dict[str, Any],
    ) -> DeliveryResult:
        try:
            client = await self._ensure_client()
            if client is None:
                return DeliveryResult.failure("Push gateway not initialized", retryable=False)

            token = await self._token_lookup(recipient_id)
            if not token:
                return DeliveryResult.failure("No device token", retryable=False)

            message_id = await client.send(build_push_message(token, notification_id, payload))
            self._events.breadcrumb(
                "push",
                "Push notification sent",
                notification_id=notification_id,
                message_id=message_id,
            )
            return DeliveryResult.success()
        except PushGatewayError as e:
            if e.is_invalid_token:
                return DeliveryResult.failure(f"Invalid token: {e.code}", retryable=False)
            return DeliveryResult.failure(str(e), retryable=True)
        except Exception as e:
            self._events.capture_exception(
                e,
                operation="push.deliver",
                notification_id=notification_id,
                recipient_id=recipient_id,
            )
            return DeliveryResult.failure(str(e) or type(e).__name__, retryable=True)

    async def close(self) -> None:
        """Close the gateway client, if one was created, and forget it.

        An initialization still in flight is awaited first so its client
        is closed rather than leaked. The next ``deliver`` or ``is_ready``
        initializes again.
        """
        task, self._init_task = self._init_task, None
        if task is None:
            return
        await asyncio.wait({task})
        if task.cancelled() or task.exception() is not None:
            return
        client = task.result()
        if client is not None:
            await client.close()


__all__ = [
    "PUSH_ADAPTER_NAME",
    "PushAdapter",
    "build_push_message",
    "default_client_factory",
]
