"""API router for delivery scheduling and inspection.

Endpoints:
    POST /delivery/notifications/{notification_id} - Schedule delivery to every adapter
    GET /delivery/notifications/{notification_id}  - Outbox state per adapter
    GET /delivery/worker                           - Worker status and registered adapters
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, status

from delivery_service.core.database import NotFoundError
from delivery_service.features.delivery.dependencies import (  # noqa: TC001
    DeliveryServiceDep,
    DeliveryWorkerDep,
)
from delivery_service.features.delivery.schemas import (
    NotificationDeliveryStatus,
    OutboxEntryResponse,
    ScheduleRequest,
    ScheduleResponse,
    WorkerStatusResponse,
)

router = APIRouter(prefix="/delivery", tags=["delivery"])
logger = logging.getLogger(__name__)


@router.get(
    "/notifications/{notification_id}",
    response_model=NotificationDeliveryStatus,
    summary="Get delivery status of a notification",
)
async def get_notification_status(
    notification_id: str,
    service: DeliveryServiceDep,
) -> NotificationDeliveryStatus:
    """Return every outbox row of the notification, one per adapter.

    Raises:
        NotFoundError: If the notification was never scheduled (or its rows were cleaned up).
    """
    entries = await service.get_status(notification_id)
    if not entries:
        raise NotFoundError("NotificationOutbox", {"notification_id": notification_id})
    return NotificationDeliveryStatus(
        notification_id=notification_id,
        entries=[OutboxEntryResponse.model_validate(entry) for entry in entries],
    )


@router.post(
    "/notifications/{notification_id}",
    response_model=ScheduleResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Schedule delivery of a notification",
)
async def schedule_notification(
    notification_id: str,
    service: DeliveryServiceDep,
    body: ScheduleRequest | None = None,
) -> ScheduleResponse:
    """Write one outbox row per registered adapter.

    Scheduling again is a no-op for adapters that already hold a row. When
    ``recipient_id`` and ``payload`` are both given, a realtime attempt is
    made right away; the outbox rows are kept either way.
    """
    adapters = await service.schedule(notification_id)

    delivered_now = None
    if body is not None and body.recipient_id and body.payload is not None:
        immediate = await service.deliver_now(notification_id, body.recipient_id, body.payload)
        delivered_now = immediate.delivered

    logger.info(
        "Notification scheduled",
        extra={
            "notification_id": notification_id,
            "adapters": adapters,
            "delivered_now": delivered_now,
        },
    )
    return ScheduleResponse(
        notification_id=notification_id, adapters=adapters, delivered_now=delivered_now
    )


@router.get(
    "/worker",
    response_model=WorkerStatusResponse,
    summary="Get delivery worker status",
)
async def get_worker_status(
    service: DeliveryServiceDep,
    worker: DeliveryWorkerDep,
) -> WorkerStatusResponse:
    running = processing = False
    if worker is not None:
        worker_status = worker.status()
        running, processing = worker_status.running, worker_status.processing
    return WorkerStatusResponse(
        running=running,
        processing=processing,
        adapters=service.registry.names(),
        pending=await service.outbox_depth(),
    )
