"""Fire-and-forget delivery events.

Every hook here logs and updates metrics but never raises: a broken log
handler or metric label must not change what the delivery pipeline does.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any

from delivery_service.features.delivery import metrics

logger = logging.getLogger("delivery.events")


class DeliveryEvents:
    """Structured log records and counters for the delivery pipeline.

    Example:
        events = DeliveryEvents()
        events.attempt("push", "outbox_...", "n-1", outcome="transient", error="timeout")
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    def attempt(
        self,
        adapter: str,
        outbox_id: str,
        notification_id: str,
        *,
        outcome: str,
        error: str | None = None,
    ) -> None:
        """Record one outbox attempt (delivered, transient, permanent, unexpected)."""
        with contextlib.suppress(Exception):
            metrics.delivery_attempts_total.labels(adapter=adapter, outcome=outcome).inc()
            extra = {
                "adapter": adapter,
                "outbox_id": outbox_id,
                "notification_id": notification_id,
                "outcome": outcome,
            }
            if outcome == "delivered":
                self._logger.debug("Notification delivered", extra=extra)
            elif outcome == "permanent":
                self._logger.warning(
                    "Notification delivery failed permanently", extra={**extra, "error": error}
                )
            else:
                self._logger.info("Notification delivery failed", extra={**extra, "error": error})

    def enqueued(self, adapter: str, notification_id: str, *, result: str) -> None:
        """Record an enqueue call (enqueued, duplicate, error)."""
        with contextlib.suppress(Exception):
            metrics.delivery_enqueued_total.labels(adapter=adapter, result=result).inc()
            self._logger.debug(
                "Outbox enqueue",
                extra={"adapter": adapter, "notification_id": notification_id, "result": result},
            )

    def skipped(self, adapter: str, reason: str) -> None:
        """Record a batch or tick that did no work (unready, busy, missing)."""
        with contextlib.suppress(Exception):
            metrics.delivery_batches_skipped_total.labels(adapter=adapter, reason=reason).inc()
            self._logger.debug("Delivery batch skipped", extra={"adapter": adapter, "reason": reason})

    def breadcrumb(self, category: str, message: str, **data: Any) -> None:
        """Low-volume trail of pipeline steps, visible at debug level."""
        with contextlib.suppress(Exception):
            self._logger.debug(message, extra={"category": category, **data})

    def capture_exception(self, exc: BaseException, *, operation: str, **context: Any) -> None:
        """Report an unexpected exception with its traceback."""
        with contextlib.suppress(Exception):
            metrics.delivery_errors_total.labels(operation=operation).inc()
            self._logger.error(
                "Unexpected delivery error",
                exc_info=(type(exc), exc, exc.__traceback__),
                extra={"operation": operation, "error": str(exc), **context},
            )


__all__ = ["DeliveryEvents"]
