"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off external infrastructure
    - Database Fixtures: in-memory SQLite engine, sessions, row factories
    - Delivery Fixtures: stub adapters, registry and service wiring
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
import os
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("PUSH_ENABLED", "false")
os.environ.setdefault("DELIVERY_WORKER_ENABLED", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("WS_HEARTBEAT_INTERVAL", "0")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with every mapped table created.

    StaticPool keeps a single connection so separate sessions see the
    same database.
    """
    from delivery_service.core.database.base import Base
    from delivery_service.features.delivery.models import NotificationOutbox
    from delivery_service.features.device_tokens.models import DeviceToken
    from delivery_service.features.notifications.models import Notification

    _ = (NotificationOutbox, DeviceToken, Notification)

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (what services receive)."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def make_notification(session_factory: async_sessionmaker[AsyncSession]):
    """Factory inserting a committed notification row.

    Example:
        async def test_x(make_notification):
            notification = await make_notification(recipient_id="u-1")
    """
    from delivery_service.features.notifications.models import Notification

    async def _make(**overrides: Any) -> Notification:
        values: dict[str, Any] = {
            "id": f"n-{uuid4().hex[:12]}",
            "recipient_id": "user-1",
            "actor_id": "user-2",
            "subject_id": "assertion-9",
            "notification_type": "reply",
            "sub_type": None,
            "created_at": datetime(2026, 10, 1, 12, 0, tzinfo=UTC),
        }
        values.update(overrides)
        notification = Notification(**values)
        async with session_factory() as session:
            session.add(notification)
            await session.commit()
        return notification

    return _make


# ============================================================================
# Delivery Fixtures
# ============================================================================


class StubAdapter:
    """Adapter whose readiness and results are scripted by the test."""

    def __init__(self, name: str = "stub", *, ready: bool = True) -> None:
        self.name = name
        self.ready = ready
        self.results: list[Any] = []
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False

    async def deliver(self, notification_id: str, recipient_id: str, payload: dict[str, Any]):
        from delivery_service.features.delivery.adapters.base import DeliveryResult

        self.calls.append((notification_id, recipient_id, payload))
        outcome = self.results.pop(0) if self.results else DeliveryResult.success()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def is_ready(self) -> bool:
        return self.ready

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def stub_adapter() -> StubAdapter:
    return StubAdapter("stub")


@pytest.fixture
def make_adapter():
    """Factory for additional stub adapters: ``make_adapter("push", ready=False)``."""
    return StubAdapter


@pytest.fixture
def registry():
    from delivery_service.features.delivery.adapters.registry import AdapterRegistry

    return AdapterRegistry()


@pytest.fixture
def outbox_repository():
    from delivery_service.features.delivery.repository import OutboxRepository

    return OutboxRepository(max_attempts=5)


@pytest.fixture
def delivery_service(registry, session_factory, outbox_repository):
    from delivery_service.features.delivery.service import DeliveryService

    return DeliveryService(registry, session_factory, repository=outbox_repository)
