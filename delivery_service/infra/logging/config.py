"""Process-wide logging setup.

The root logger gets a single QueueHandler; the real handlers (stderr and
optionally a rotating file) run on a QueueListener thread, so a slow disk
or pipe never stalls the event loop.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from queue import SimpleQueue
from typing import TYPE_CHECKING

from delivery_service.infra.logging.context import ContextInjectingFilter
from delivery_service.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from delivery_service.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_listener: QueueListener | None = None
_root_handler: QueueHandler | None = None
_configured = False


def setup_logging(log_settings: LoggingSettings | None = None, *, force: bool = False) -> None:
    """Configure logging unless an earlier entrypoint already did.

    Args:
        log_settings: Defaults to ``get_logging_settings()``.
        force: Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return
    if log_settings is None:
        from delivery_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()
    configure_logging(log_settings)
    _configured = True


def configure_logging(settings: LoggingSettings) -> None:
    """Replace any previous configuration with one built from ``settings``."""
    shutdown()
    logging.captureWarnings(settings.capture_warnings)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {"level": settings.level, "handlers": []},
        }
    )
    _attach_queue(_handlers_for(settings), with_context=settings.include_context)
    logger.debug(
        "Logging configured",
        extra={"json": settings.json_logs, "file": str(settings.effective_file_path or "")},
    )


def shutdown() -> None:
    """Flush queued records and detach the queue handler."""
    global _listener, _root_handler
    if _listener is not None:
        _listener.stop()
        _listener = None
    if _root_handler is not None:
        logging.getLogger().removeHandler(_root_handler)
        _root_handler = None


def _formatter_for(settings: LoggingSettings) -> logging.Formatter:
    if settings.json_logs:
        return JSONFormatter(static={"service": settings.service_name})
    return logging.Formatter(TEXT_FORMAT)


def _handlers_for(settings: LoggingSettings) -> list[logging.Handler]:
    formatter = _formatter_for(settings)
    handlers: list[logging.Handler] = []

    if settings.console_enabled:
        stderr = logging.StreamHandler()
        stderr.setLevel(settings.effective_console_level)
        handlers.append(stderr)

    path = settings.effective_file_path
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path,
            maxBytes=settings.file_max_bytes,
            backupCount=settings.file_backup_count,
            encoding="utf-8",
        )
        rotating.setLevel(settings.effective_file_level)
        handlers.append(rotating)

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _attach_queue(handlers: list[logging.Handler], *, with_context: bool) -> None:
    global _listener, _root_handler
    queue: SimpleQueue[logging.LogRecord] = SimpleQueue()

    if handlers:
        _listener = QueueListener(queue, *handlers, respect_handler_level=True)
        _listener.start()
        atexit.register(shutdown)

    _root_handler = QueueHandler(queue)
    # On the handler rather than the root logger so propagated records are enriched too
    if with_context:
        _root_handler.addFilter(ContextInjectingFilter())
    logging.getLogger().addHandler(_root_handler)
