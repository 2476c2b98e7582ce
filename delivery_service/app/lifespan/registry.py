"""Ordered startup and shutdown hooks.

Each lifespan module registers a startup function and, optionally, a
shutdown function under the same name. Startup runs in dependency order
(``requires``) with ``startup_order`` as the tie breaker; shutdown runs
only for hooks that started, in the reverse order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    HookFunc = Callable[..., Awaitable[None]]

logger = logging.getLogger(__name__)


@dataclass
class LifecycleHook:
    """A named startup or shutdown coroutine function."""

    name: str
    func: HookFunc
    order: int
    requires: list[str] = field(default_factory=list)

    async def execute(self, **kwargs: Any) -> None:
        await self.func(**kwargs)


class LifecycleRegistry:
    """Collects lifespan hooks and runs them in order.

    Example:
        registry = LifecycleRegistry()

        @registry.register(name="delivery", startup_order=30, requires=["database"])
        async def startup_delivery(app: FastAPI, delivery_settings: DeliverySettings, **kwargs) -> None:
            ...

        @registry.register(name="delivery")
        async def shutdown_delivery(app: FastAPI, **kwargs) -> None:
            ...

        await registry.startup(app=app, delivery_settings=settings)
        await registry.shutdown(app=app, delivery_settings=settings)

    A function whose name starts with ``shutdown`` (or ends with
    ``_shutdown``) is registered as the shutdown half of ``name``.
    """

    def __init__(self) -> None:
        self._startup_hooks: dict[str, LifecycleHook] = {}
        self._shutdown_hooks: dict[str, LifecycleHook] = {}
        self._started: list[str] = []

    def register(
        self,
        name: str,
        startup_order: int = 50,
        requires: list[str] | None = None,
    ) -> Callable[[HookFunc], HookFunc]:
        """Decorator registering a startup or shutdown hook under ``name``.

        Raises:
            ValueError: If the same half of ``name`` is registered twice.
        """

        def decorator(func: HookFunc) -> HookFunc:
            func_name = func.__name__.lower()
            is_shutdown = func_name.startswith("shutdown") or func_name.endswith("_shutdown")
            hooks = self._shutdown_hooks if is_shutdown else self._startup_hooks
            if name in hooks:
                kind = "Shutdown" if is_shutdown else "Startup"
                msg = f"{kind} hook '{name}' already registered"
                raise ValueError(msg)
            hooks[name] = LifecycleHook(name, func, startup_order, list(requires or []))
            return func

        return decorator

    def startup_order(self) -> list[str]:
        """Hook names in startup order.

        Raises:
            ValueError: On a missing or circular dependency.
        """
        ordered: list[str] = []
        state: dict[str, str] = {}

        def visit(name: str, chain: list[str]) -> None:
            if state.get(name) == "done":
                return
            if state.get(name) == "visiting":
                msg = f"Circular dependency detected: {' -> '.join([*chain, name])}"
                raise ValueError(msg)
            state[name] = "visiting"
            hook = self._startup_hooks[name]
            for dep in sorted(hook.requires, key=lambda n: self._order_of(n, name)):
                visit(dep, [*chain, name])
            state[name] = "done"
            ordered.append(name)

        for name in sorted(self._startup_hooks, key=lambda n: self._startup_hooks[n].order):
            visit(name, [])
        return ordered

    def _order_of(self, dep: str, requested_by: str) -> int:
        if dep not in self._startup_hooks:
            msg = f"Hook '{requested_by}' requires '{dep}' but it's not registered"
            raise ValueError(msg)
        return self._startup_hooks[dep].order

    async def startup(self, **kwargs: Any) -> None:
        """Run startup hooks; the first failure aborts startup and is re-raised."""
        self._started.clear()
        for name in self.startup_order():
            logger.debug("Starting %s", name)
            try:
                await self._startup_hooks[name].execute(**kwargs)
            except Exception:
                logger.exception("Failed to start %s", name)
                raise
            self._started.append(name)

    async def shutdown(self, **kwargs: Any) -> None:
        """Run shutdown hooks of started components in reverse startup order.

        A failing hook is logged and the remaining hooks still run.
        """
        for name in reversed(self._started):
            hook = self._shutdown_hooks.get(name)
            if hook is None:
                continue
            logger.debug("Shutting down %s", name)
            try:
                await hook.execute(**kwargs)
            except Exception:
                logger.warning("Error shutting down %s", name, exc_info=True)
        self._started.clear()

    @property
    def started(self) -> list[str]:
        return list(self._started)

    def clear(self) -> None:
        self._startup_hooks.clear()
        self._shutdown_hooks.clear()
        self._started.clear()


lifespan_registry = LifecycleRegistry()

__all__ = ["LifecycleHook", "LifecycleRegistry", "lifespan_registry"]
