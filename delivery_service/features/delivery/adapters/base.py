"""Delivery adapter contract.

An adapter pushes one notification to one recipient over one transport
and reports the outcome as a ``DeliveryResult``. ``deliver`` must not
raise: transport errors, missing tokens and gateway rejections all come
back as failures with ``retryable`` set. If an adapter raises anyway, the
service records a retryable failure and captures the exception as a bug.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of a single delivery attempt.

    ``retryable`` only matters when ``ok`` is False.
    """

    ok: bool
    error: str | None = None
    retryable: bool = False

    @classmethod
    def success(cls) -> DeliveryResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str, *, retryable: bool) -> DeliveryResult:
        return cls(ok=False, error=error, retryable=retryable)


@runtime_checkable
class DeliveryAdapter(Protocol):
    """Transport-specific delivery.

    Implementations may subclass this protocol explicitly to inherit the
    default ``is_ready`` (always ready) and ``close`` (nothing to release).

    Example:
        class LogAdapter(DeliveryAdapter):
            name = "log"

            async def deliver(self, notification_id, recipient_id, payload):
                logger.info("deliver", extra={"notification_id": notification_id})
                return DeliveryResult.success()
    """

    name: str

    async def deliver(
        self,
        notification_id: str,
        recipient_id: str,
        payload: dict[str, Any],
    ) -> DeliveryResult:
        """Attempt one delivery. Failures are returned, never raised."""
        ...

    async def is_ready(self) -> bool:
        """Cheap readiness check. Not ready means skip without consuming attempts."""
        return True

    async def close(self) -> None:
        """Release held transport resources."""
        return None


__all__ = ["DeliveryAdapter", "DeliveryResult"]
