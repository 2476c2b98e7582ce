"""Tests for the lifespan hook registry and the application hooks."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from delivery_service.app.lifespan.registry import LifecycleRegistry
from delivery_service.core.settings import DeliverySettings, PostgresSettings, PushSettings

# ──────────────────────────────────────────────────────────────
# LifecycleRegistry
# ──────────────────────────────────────────────────────────────


def _recording_registry(calls: list[str]) -> LifecycleRegistry:
    registry = LifecycleRegistry()

    @registry.register(name="core", startup_order=1)
    async def startup_core(**kwargs):
        calls.append("start core")

    @registry.register(name="core")
    async def shutdown_core(**kwargs):
        calls.append("stop core")

    @registry.register(name="delivery", startup_order=5, requires=["database"])
    async def startup_delivery(**kwargs):
        calls.append("start delivery")

    @registry.register(name="delivery")
    async def shutdown_delivery(**kwargs):
        calls.append("stop delivery")

    @registry.register(name="database", startup_order=10, requires=["core"])
    async def startup_database(**kwargs):
        calls.append("start database")

    @registry.register(name="database")
    async def shutdown_database(**kwargs):
        calls.append("stop database")

    return registry


class TestLifecycleRegistry:
    """Ordering and failure handling."""

    def test_dependencies_come_first(self):
        """A hook starts after everything it requires, regardless of order value."""
        registry = _recording_registry([])

        assert registry.startup_order() == ["core", "database", "delivery"]

    @pytest.mark.asyncio
    async def test_shutdown_runs_in_reverse(self):
        calls: list[str] = []
        registry = _recording_registry(calls)

        await registry.startup(app=None)
        await registry.shutdown(app=None)

        assert calls == [
            "start core",
            "start database",
            "start delivery",
            "stop delivery",
            "stop database",
            "stop core",
        ]
        assert registry.started == []

    @pytest.mark.asyncio
    async def test_failed_startup_only_shuts_down_started_hooks(self):
        calls: list[str] = []
        registry = LifecycleRegistry()

        @registry.register(name="core", startup_order=1)
        async def startup_core(**kwargs):
            calls.append("start core")

        @registry.register(name="core")
        async def shutdown_core(**kwargs):
            calls.append("stop core")

        @registry.register(name="database", startup_order=2)
        async def startup_database(**kwargs):
            raise ConnectionError("unreachable")

        @registry.register(name="database")
        async def shutdown_database(**kwargs):
            calls.append("stop database")

        with pytest.raises(ConnectionError):
            await registry.startup()
        await registry.shutdown()

        assert calls == ["start core", "stop core"]

    @pytest.mark.asyncio
    async def test_shutdown_failure_does_not_stop_others(self):
        calls: list[str] = []
        registry = LifecycleRegistry()

        @registry.register(name="a", startup_order=1)
        async def startup_a(**kwargs):
            pass

        @registry.register(name="a")
        async def shutdown_a(**kwargs):
            calls.append("stop a")

        @registry.register(name="b", startup_order=2)
        async def startup_b(**kwargs):
            pass

        @registry.register(name="b")
        async def shutdown_b(**kwargs):
            raise RuntimeError("stuck")

        await registry.startup()
        await registry.shutdown()

        assert calls == ["stop a"]

    def test_missing_dependency(self):
        registry = LifecycleRegistry()

        @registry.register(name="delivery", requires=["database"])
        async def startup_delivery(**kwargs):
            pass

        with pytest.raises(ValueError, match="not registered"):
            registry.startup_order()

    def test_circular_dependency(self):
        registry = LifecycleRegistry()

        @registry.register(name="a", requires=["b"])
        async def startup_a(**kwargs):
            pass

        @registry.register(name="b", requires=["a"])
        async def startup_b(**kwargs):
            pass

        with pytest.raises(ValueError, match="Circular dependency"):
            registry.startup_order()

    def test_duplicate_registration(self):
        registry = LifecycleRegistry()

        @registry.register(name="a")
        async def startup_a(**kwargs):
            pass

        with pytest.raises(ValueError, match="already registered"):

            @registry.register(name="a")
            async def startup_again(**kwargs):
                pass


# ──────────────────────────────────────────────────────────────
# Application hooks
# ──────────────────────────────────────────────────────────────


def _app() -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace())


class TestDatabaseHook:
    @pytest.mark.asyncio
    async def test_ready_when_database_answers(self):
        from delivery_service.app.lifespan import database

        app = _app()
        with patch.object(database, "init_database", AsyncMock()):
            await database.startup_database(app, PostgresSettings(enabled=False))

        assert app.state.database_ready is True

    @pytest.mark.asyncio
    async def test_degraded_when_not_required(self):
        from delivery_service.app.lifespan import database

        app = _app()
        with patch.object(database, "init_database", AsyncMock(side_effect=OSError("refused"))):
            await database.startup_database(
                app, PostgresSettings(enabled=False, startup_require_db=False)
            )

        assert app.state.database_ready is False

    @pytest.mark.asyncio
    async def test_raises_when_required(self):
        from delivery_service.app.lifespan import database

        app = _app()
        with (
            patch.object(database, "init_database", AsyncMock(side_effect=OSError("refused"))),
            pytest.raises(OSError),
        ):
            await database.startup_database(
                app, PostgresSettings(enabled=False, startup_require_db=True)
            )


class TestDeliveryHook:
    """Service wiring and worker start conditions."""

    @pytest.mark.asyncio
    async def test_registers_realtime_only_when_push_disabled(self, session_factory):
        from delivery_service.app.lifespan import delivery

        app = _app()
        app.state.database_ready = True
        with patch.object(delivery, "AsyncSessionLocal", session_factory):
            await delivery.startup_delivery(
                app, DeliverySettings(worker_enabled=False), PushSettings(enabled=False)
            )

        assert app.state.delivery_service.registry.names() == ["realtime"]
        assert app.state.delivery_worker is None

        await delivery.shutdown_delivery(app)
        assert app.state.delivery_service is None

    @pytest.mark.asyncio
    async def test_registers_push_when_configured(self, session_factory):
        from delivery_service.app.lifespan import delivery

        app = _app()
        app.state.database_ready = False
        with patch.object(delivery, "AsyncSessionLocal", session_factory):
            await delivery.startup_delivery(
                app,
                DeliverySettings(worker_enabled=True),
                PushSettings(enabled=True, api_key="secret"),
            )

        try:
            assert app.state.delivery_service.registry.names() == ["realtime", "push"]
            # Database not ready: the worker stays stopped
            assert app.state.delivery_worker is None
        finally:
            await delivery.shutdown_delivery(app)

    @pytest.mark.asyncio
    async def test_starts_and_stops_worker(self, session_factory):
        from delivery_service.app.lifespan import delivery

        app = _app()
        app.state.database_ready = True
        with patch.object(delivery, "AsyncSessionLocal", session_factory):
            await delivery.startup_delivery(
                app,
                DeliverySettings(worker_enabled=True, interval_ms=60_000),
                PushSettings(enabled=False),
            )

        worker = app.state.delivery_worker
        assert worker is not None
        assert worker.running is True

        await delivery.shutdown_delivery(app)

        assert worker.running is False
        assert app.state.delivery_worker is None
