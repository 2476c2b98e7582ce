"""Health check endpoint.

``GET /health`` reports the database check, realtime manager state and
delivery worker state. It answers 200 while the process can serve
requests and 503 when the database check fails.
"""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel
from sqlalchemy import text

from delivery_service.core.dependencies.database import DbSessionDep  # noqa: TC001
from delivery_service.infra.realtime import get_connection_manager

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    database: bool
    realtime: bool
    worker_running: bool
    adapters: list[str]


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(request: Request, response: Response, session: DbSessionDep) -> HealthResponse:
    try:
        await session.execute(text("SELECT 1"))
        database = True
    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        database = False

    try:
        realtime = get_connection_manager().is_running
    except RuntimeError:
        realtime = False

    service = getattr(request.app.state, "delivery_service", None)
    worker = getattr(request.app.state, "delivery_worker", None)

    if not database:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="healthy" if database else "unhealthy",
        database=database,
        realtime=realtime,
        worker_running=worker is not None and worker.running,
        adapters=service.registry.names() if service is not None else [],
    )
