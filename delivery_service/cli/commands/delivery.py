"""Outbox operations for operators.

Example:bash
    # Queue a notification for every adapter
    delivery-service delivery schedule 9f2c...

    # Drain due push rows once
    delivery-service delivery process --adapter push

    # Apply retention with custom windows
    delivery-service delivery cleanup --delivered-days 3 --failed-days 14

    # Inspect one notification
    delivery-service delivery status 9f2c...

    # Pending rows per adapter
    delivery-service delivery depth
"""

import sys

import click

from delivery_service.cli.utils import coro, error, header, info, key_values, success, warning


async def _build_service():
    """Delivery service with the adapters available to this process.

    Realtime sockets live in the API processes, so the realtime adapter is
    registered but never ready here; its batches are skipped.
    """
    from delivery_service.core.settings import get_delivery_settings, get_push_settings
    from delivery_service.features.delivery.adapters import (
        AdapterRegistry,
        PushAdapter,
        RealtimeAdapter,
    )
    from delivery_service.features.delivery.repository import OutboxRepository
    from delivery_service.features.delivery.service import DeliveryService
    from delivery_service.features.device_tokens.lookup import DeviceTokenLookup
    from delivery_service.infra.database import AsyncSessionLocal, init_database

    await init_database()
    service = DeliveryService(
        AdapterRegistry(),
        AsyncSessionLocal,
        repository=OutboxRepository.from_settings(get_delivery_settings()),
    )
    push = PushAdapter(get_push_settings(), DeviceTokenLookup(AsyncSessionLocal))
    await service.init(realtime=RealtimeAdapter(), push=push)
    return service


async def _shutdown(service) -> None:
    from delivery_service.infra.database import close_database

    await service.registry.close_all()
    await close_database()


@click.group(name="delivery")
def delivery() -> None:
    """Notification outbox commands."""


@delivery.command()
@click.option("--adapter", "adapter_name", default=None, help="Only process this adapter")
@click.option("--batch-size", default=None, type=int, help="Rows per adapter (default: DELIVERY_BATCH_SIZE)")
@coro
async def process(adapter_name: str | None, batch_size: int | None) -> None:
    """Run one delivery pass over due outbox rows."""
    from delivery_service.core.settings import get_delivery_settings
    from delivery_service.features.delivery.exceptions import AdapterNotRegisteredError
    from delivery_service.features.delivery.worker import DeliveryWorker

    service = await _build_service()
    try:
        if adapter_name is not None:
            try:
                service.registry.require(adapter_name)
            except AdapterNotRegisteredError as e:
                error(str(e))
                sys.exit(1)
            names = [adapter_name]
        else:
            names = service.registry.names()

        worker = DeliveryWorker(service, get_delivery_settings())
        results = await worker.run_once(names, batch_size=batch_size) or {}
    finally:
        await _shutdown(service)

    header("Delivery pass")
    failed = [name for name in names if name not in results]
    for name, result in results.items():
        key_values(
            {
                "adapter": name,
                "processed": result.processed,
                "delivered": result.delivered,
                "failed": result.failed,
            }
        )
    if failed:
        error(f"Batch failed for {', '.join(failed)}; see logs")
        sys.exit(1)
    success("Delivery pass complete")


@delivery.command()
@click.argument("notification_id")
@coro
async def schedule(notification_id: str) -> None:
    """Enqueue NOTIFICATION_ID for every registered adapter."""
    service = await _build_service()
    try:
        scheduled = await service.schedule(notification_id)
    finally:
        await _shutdown(service)

    if not scheduled:
        error(f"Notification {notification_id} was not scheduled for any adapter")
        sys.exit(1)
    success(f"Scheduled {notification_id} for {', '.join(scheduled)}")


@delivery.command()
@click.option("--delivered-days", default=None, type=int, help="Delete delivered rows older than this")
@click.option("--failed-days", default=None, type=int, help="Delete failed rows created before this")
@coro
async def cleanup(delivered_days: int | None, failed_days: int | None) -> None:
    """Apply outbox retention."""
    from delivery_service.core.settings import get_delivery_settings

    settings = get_delivery_settings()
    service = await _build_service()
    try:
        delivered = await service.cleanup_delivered(delivered_days or settings.delivered_retention_days)
        failed = await service.cleanup_failed(failed_days or settings.failed_retention_days)
    finally:
        await _shutdown(service)

    success(f"Deleted {delivered.deleted} delivered and {failed.deleted} failed outbox rows")


@delivery.command()
@click.argument("notification_id")
@coro
async def status(notification_id: str) -> None:
    """Show outbox state of NOTIFICATION_ID per adapter."""
    service = await _build_service()
    try:
        entries = await service.get_status(notification_id)
    finally:
        await _shutdown(service)

    if not entries:
        warning(f"No outbox rows for notification {notification_id}")
        sys.exit(1)

    header(f"Notification {notification_id}")
    for entry in entries:
        key_values(
            {
                "adapter": entry.adapter,
                "status": entry.status,
                "attempts": entry.attempts,
                "next_attempt_at": entry.next_attempt_at.isoformat(),
                "delivered_at": entry.delivered_at.isoformat() if entry.delivered_at else "-",
                "last_error": entry.last_error or "-",
            }
        )
        click.echo()


@delivery.command()
@coro
async def depth() -> None:
    """Show pending outbox rows per adapter."""
    service = await _build_service()
    try:
        per_adapter = {name: await service.outbox_depth(name) for name in service.registry.names()}
        total = await service.outbox_depth()
    finally:
        await _shutdown(service)

    header("Outbox backlog")
    key_values({**per_adapter, "total": total})
    if total == 0:
        info("Outbox is empty")
