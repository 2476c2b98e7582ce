"""Infrastructure-level Prometheus metrics.

Delivery-specific metrics live in ``delivery_service.features.delivery.metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

application_info = Gauge(
    "application_info",
    "Application build information",
    labelnames=["version", "service", "environment"],
)

websocket_connections_total = Gauge(
    "websocket_connections_total",
    "Active realtime notification sockets on this instance",
)

websocket_connected_users = Gauge(
    "websocket_connected_users",
    "Distinct users with at least one active socket on this instance",
)

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Retries performed by the retry decorator",
    labelnames=["function"],
)

retry_exhausted_total = Counter(
    "retry_exhausted_total",
    "Calls that failed after exhausting all retry attempts",
    labelnames=["function"],
)
