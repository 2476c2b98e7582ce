"""Named collection of delivery adapters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delivery_service.features.delivery.exceptions import AdapterNotRegisteredError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from delivery_service.features.delivery.adapters.base import DeliveryAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Maps adapter names to adapters in registration order.

    Registering a name twice replaces the earlier adapter. The registry is
    built during startup and only read afterwards.

    Example:
        registry = AdapterRegistry()
        registry.register(RealtimeAdapter())
        adapter = registry.require("realtime")
    """

    def __init__(self) -> None:
        self._adapters: dict[str, DeliveryAdapter] = {}

    def register(self, adapter: DeliveryAdapter, name: str | None = None) -> None:
        """Register ``adapter`` under ``name`` (defaults to ``adapter.name``)."""
        key = name or adapter.name
        if key in self._adapters:
            logger.info("Replacing delivery adapter", extra={"adapter": key})
        self._adapters[key] = adapter
        logger.debug("Registered delivery adapter", extra={"adapter": key})

    def get(self, name: str) -> DeliveryAdapter | None:
        return self._adapters.get(name)

    def require(self, name: str) -> DeliveryAdapter:
        """Like ``get`` but raises for unknown names.

        Raises:
            AdapterNotRegisteredError: If nothing is registered under ``name``.
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            raise AdapterNotRegisteredError(name, self.names())
        return adapter

    def names(self) -> list[str]:
        return list(self._adapters)

    def all(self) -> list[DeliveryAdapter]:
        return list(self._adapters.values())

    def items(self) -> list[tuple[str, DeliveryAdapter]]:
        return list(self._adapters.items())

    def clear(self) -> None:
        self._adapters.clear()

    async def close_all(self) -> None:
        """Close every adapter; a failing close is logged and skipped."""
        for name, adapter in self._adapters.items():
            try:
                await adapter.close()
            except Exception:
                logger.exception("Failed to close delivery adapter", extra={"adapter": name})

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._adapters))


__all__ = ["AdapterRegistry"]
