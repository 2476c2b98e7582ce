"""Delivery service and worker lifespan management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delivery_service.features.delivery.adapters import AdapterRegistry, PushAdapter, RealtimeAdapter
from delivery_service.features.delivery.repository import OutboxRepository
from delivery_service.features.delivery.service import DeliveryService
from delivery_service.features.delivery.worker import DeliveryWorker
from delivery_service.features.device_tokens.lookup import DeviceTokenLookup
from delivery_service.infra.database.session import AsyncSessionLocal

from .registry import lifespan_registry

if TYPE_CHECKING:
    from fastapi import FastAPI

    from delivery_service.core.settings import DeliverySettings, PushSettings

logger = logging.getLogger(__name__)


@lifespan_registry.register(
    name="delivery",
    startup_order=30,
    requires=["database", "realtime"],
)
async def startup_delivery(
    app: FastAPI,
    delivery_settings: DeliverySettings,
    push_settings: PushSettings,
    **kwargs: object,
) -> None:
    """Build the adapter registry and delivery service, then start the worker.

    The service is always exposed on ``app.state`` so immediate delivery
    and status queries work; the worker only runs when enabled and the
    database came up.
    """
    registry = AdapterRegistry()
    service = DeliveryService(
        registry,
        AsyncSessionLocal,
        repository=OutboxRepository.from_settings(delivery_settings),
    )
    push = PushAdapter(push_settings, DeviceTokenLookup(AsyncSessionLocal))
    await service.init(realtime=RealtimeAdapter(), push=push)
    app.state.delivery_service = service
    app.state.delivery_worker = None

    if not delivery_settings.worker_enabled:
        logger.info("Delivery worker disabled")
        return
    if not getattr(app.state, "database_ready", False):
        logger.warning("Database unavailable, delivery worker not started")
        return

    worker = DeliveryWorker(service, delivery_settings)
    worker.start(delivery_settings.interval_ms)
    app.state.delivery_worker = worker


@lifespan_registry.register(name="delivery")
async def shutdown_delivery(app: FastAPI, **kwargs: object) -> None:
    """Stop the worker, then close every adapter's transport."""
    worker: DeliveryWorker | None = getattr(app.state, "delivery_worker", None)
    if worker is not None:
        await worker.stop()
        app.state.delivery_worker = None

    service: DeliveryService | None = getattr(app.state, "delivery_service", None)
    if service is not None:
        await service.registry.close_all()
        app.state.delivery_service = None
