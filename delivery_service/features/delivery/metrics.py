"""Prometheus metrics for notification delivery."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

delivery_attempts_total = Counter(
    "delivery_attempts_total",
    "Outbox delivery attempts by adapter and outcome",
    labelnames=["adapter", "outcome"],
)

delivery_enqueued_total = Counter(
    "delivery_enqueued_total",
    "Outbox enqueue calls by adapter and result",
    labelnames=["adapter", "result"],
)

delivery_immediate_total = Counter(
    "delivery_immediate_total",
    "Best-effort immediate deliveries by outcome",
    labelnames=["outcome"],
)

delivery_batch_duration_seconds = Histogram(
    "delivery_batch_duration_seconds",
    "Time spent processing one outbox batch",
    labelnames=["adapter"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

delivery_batches_skipped_total = Counter(
    "delivery_batches_skipped_total",
    "Batches or worker ticks skipped without touching the outbox",
    labelnames=["adapter", "reason"],
)

delivery_outbox_pending = Gauge(
    "delivery_outbox_pending",
    "Pending outbox rows observed after the last worker pass",
)

delivery_cleanup_deleted_total = Counter(
    "delivery_cleanup_deleted_total",
    "Outbox rows removed by retention cleanup",
    labelnames=["status"],
)

push_initialization_total = Counter(
    "push_initialization_total",
    "Push transport initialization outcomes",
    labelnames=["outcome"],
)

delivery_errors_total = Counter(
    "delivery_errors_total",
    "Unexpected exceptions captured by the delivery pipeline",
    labelnames=["operation"],
)
