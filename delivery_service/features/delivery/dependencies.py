"""FastAPI dependencies exposing the delivery service and worker.

Both objects are created by the delivery lifespan hook and stored on
``app.state``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from delivery_service.features.delivery.service import DeliveryService
from delivery_service.features.delivery.worker import DeliveryWorker


def get_delivery_service(request: Request) -> DeliveryService:
    service = getattr(request.app.state, "delivery_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Delivery service not initialized",
        )
    return service


def get_delivery_worker(request: Request) -> DeliveryWorker | None:
    return getattr(request.app.state, "delivery_worker", None)


DeliveryServiceDep = Annotated[DeliveryService, Depends(get_delivery_service)]
DeliveryWorkerDep = Annotated[DeliveryWorker | None, Depends(get_delivery_worker)]
