"""Logging infrastructure.

JSON Lines output through a queue handler, per-task context fields and lazy
debug messages.

Basic usage:
    import logging
    from delivery_service.infra.logging import log_context

    logger = logging.getLogger(__name__)
    with log_context(adapter="push"):
        logger.info("Batch started", extra={"batch_size": 50})
"""

from delivery_service.infra.logging.config import configure_logging, setup_logging, shutdown
from delivery_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
)
from delivery_service.infra.logging.formatters import JSONFormatter
from delivery_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "log_context",
    "setup_logging",
    "shutdown",
]
