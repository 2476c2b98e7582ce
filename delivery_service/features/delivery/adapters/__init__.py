"""Delivery adapters and their registry."""

from delivery_service.features.delivery.adapters.base import DeliveryAdapter, DeliveryResult
from delivery_service.features.delivery.adapters.gateway import PushGatewayClient, PushMessage
from delivery_service.features.delivery.adapters.push import (
    PUSH_ADAPTER_NAME,
    PushAdapter,
    build_push_message,
)
from delivery_service.features.delivery.adapters.realtime import (
    REALTIME_ADAPTER_NAME,
    RealtimeAdapter,
)
from delivery_service.features.delivery.adapters.registry import AdapterRegistry

__all__ = [
    "PUSH_ADAPTER_NAME",
    "REALTIME_ADAPTER_NAME",
    "AdapterRegistry",
    "DeliveryAdapter",
    "DeliveryResult",
    "PushAdapter",
    "PushGatewayClient",
    "PushMessage",
    "RealtimeAdapter",
    "build_push_message",
]
