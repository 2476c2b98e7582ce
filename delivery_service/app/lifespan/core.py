"""Core lifespan services: logging and application metrics.

These run first and have no dependencies.
"""

from __future__ import annotations

import logging

from delivery_service.core.settings import AppSettings, LoggingSettings
from delivery_service.infra.logging.config import setup_logging
from delivery_service.infra.metrics.prometheus import application_info

from .registry import lifespan_registry

logger = logging.getLogger(__name__)


@lifespan_registry.register(name="core", startup_order=1)
async def startup_core(
    app_settings: AppSettings,
    log_settings: LoggingSettings,
    **kwargs: object,
) -> None:
    """Configure logging and publish the application info gauge."""
    setup_logging(log_settings=log_settings, force=True)
    logger.info(
        "Application starting",
        extra={"service": app_settings.service_name, "environment": app_settings.environment},
    )

    application_info.labels(
        version=app_settings.version,
        service=app_settings.service_name,
        environment=app_settings.environment,
    ).set(1)


@lifespan_registry.register(name="core")
async def shutdown_core(**kwargs: object) -> None:
    logger.debug("Core services shutdown")
