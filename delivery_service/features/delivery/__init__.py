"""Outbox-backed notification delivery.

Basic usage:
    registry = AdapterRegistry()
    service = DeliveryService(registry, AsyncSessionLocal)
    await service.init(realtime=RealtimeAdapter(), push=push_adapter)

    await service.schedule(notification_id)
    DeliveryWorker(service).start()
"""

from delivery_service.features.delivery.adapters import (
    AdapterRegistry,
    DeliveryAdapter,
    DeliveryResult,
    PushAdapter,
    RealtimeAdapter,
)
from delivery_service.features.delivery.exceptions import (
    AdapterNotRegisteredError,
    DeliveryError,
    PushGatewayError,
)
from delivery_service.features.delivery.models import NotificationOutbox, OutboxStatus
from delivery_service.features.delivery.repository import (
    CleanupResult,
    EnqueueResult,
    OutboxRepository,
    PendingDelivery,
)
from delivery_service.features.delivery.service import BatchResult, DeliveryService, ImmediateResult
from delivery_service.features.delivery.worker import DeliveryWorker, WorkerStatus

__all__ = [
    "AdapterNotRegisteredError",
    "AdapterRegistry",
    "BatchResult",
    "CleanupResult",
    "DeliveryAdapter",
    "DeliveryError",
    "DeliveryResult",
    "DeliveryService",
    "DeliveryWorker",
    "EnqueueResult",
    "ImmediateResult",
    "NotificationOutbox",
    "OutboxRepository",
    "OutboxStatus",
    "PendingDelivery",
    "PushAdapter",
    "PushGatewayError",
    "RealtimeAdapter",
    "WorkerStatus",
]
