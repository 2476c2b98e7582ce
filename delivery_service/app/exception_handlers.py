"""Global exception handlers for FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from delivery_service.core.database import NotFoundError
from delivery_service.features.delivery.exceptions import AdapterNotRegisteredError

logger = logging.getLogger(__name__)


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, NotFoundError)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "type": "not-found",
            "title": "Not Found",
            "status": status.HTTP_404_NOT_FOUND,
            "detail": exc.message,
            "instance": str(request.url.path),
        },
    )


async def adapter_not_registered_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, AdapterNotRegisteredError)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "type": "adapter-not-registered",
            "title": "Bad Request",
            "status": status.HTTP_400_BAD_REQUEST,
            "detail": str(exc),
            "instance": str(request.url.path),
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method, "error": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "type": "internal-error",
            "title": "Internal Server Error",
            "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "detail": "An unexpected error occurred",
            "instance": str(request.url.path),
        },
    )


def configure_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(AdapterNotRegisteredError, adapter_not_registered_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
