"""Delivery errors."""

from __future__ import annotations

INVALID_TOKEN_CODES = frozenset(
    {
        "registration-token-not-registered",
        "invalid-registration-token",
        "messaging/registration-token-not-registered",
        "messaging/invalid-registration-token",
        "UNREGISTERED",
    }
)


class DeliveryError(Exception):
    """Base class for delivery errors."""


class AdapterNotRegisteredError(DeliveryError, LookupError):
    """Raised by ``AdapterRegistry.require`` for an unknown adapter name."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available or []
        super().__init__(
            f"No delivery adapter registered as {name!r} "
            f"(registered: {', '.join(self.available) or 'none'})"
        )


class PushGatewayError(DeliveryError):
    """The push gateway rejected a message or could not be reached.

    Attributes:
        code: Gateway error code, e.g. ``UNREGISTERED`` or ``transport-error``
        message: Gateway-provided description
        status_code: HTTP status returned by the gateway, if any
    """

    def __init__(self, code: str, message: str = "", status_code: int | None = None) -> None:
        self.code = code
        self.message = message or code
        self.status_code = status_code
        super().__init__(f"{code}: {self.message}" if message else code)

    @property
    def is_invalid_token(self) -> bool:
        """Whether the target token will never be deliverable again."""
        return self.code in INVALID_TOKEN_CODES


__all__ = [
    "INVALID_TOKEN_CODES",
    "AdapterNotRegisteredError",
    "DeliveryError",
    "PushGatewayError",
]
