"""In-process registry of notification sockets, keyed by recipient.

Presence is per instance: a user connected to a different replica is
offline here, and picks their notifications up through the pull API.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
import logging
import time
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from delivery_service.core.settings import get_websocket_settings
from delivery_service.infra.metrics.prometheus import (
    websocket_connected_users,
    websocket_connections_total,
)

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = logging.getLogger(__name__)

PING = {"type": "ping"}


@dataclass
class ConnectionInfo:
    connection_id: str
    websocket: WebSocket
    user_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    connected_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)

    def idle_for(self, now: float) -> float:
        return now - self.last_seen


class ConnectionManager:
    """Accepts sockets, answers presence and fans messages out per user.

    Example:
        manager = ConnectionManager()
        await manager.start()

        connection_id = await manager.connect(websocket, user_id="u-1")
        try:
            async for message in websocket.iter_json():
                manager.touch(connection_id)
        finally:
            await manager.disconnect(connection_id)
    """

    def __init__(self) -> None:
        self._settings = get_websocket_settings()
        self._sockets: dict[str, ConnectionInfo] = {}
        self._by_user: dict[str, set[str]] = {}
        self._heartbeat: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def connection_count(self) -> int:
        return len(self._sockets)

    @property
    def user_count(self) -> int:
        return len(self._by_user)

    # ──────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        interval = self._settings.heartbeat_interval
        if interval > 0:
            self._heartbeat = asyncio.create_task(self._heartbeat_loop(interval))
        logger.info("Realtime sockets open", extra={"heartbeat_interval": interval})

    async def stop(self) -> None:
        """Cancel the heartbeat and close all sockets with 1001."""
        self._running = False
        if self._heartbeat is not None:
            self._heartbeat.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat
            self._heartbeat = None

        sockets = list(self._sockets.values())
        self._sockets.clear()
        self._by_user.clear()
        self._publish_gauges()

        for info in sockets:
            with contextlib.suppress(Exception):
                await info.websocket.close(code=1001, reason="Server shutdown")
        logger.info("Realtime sockets closed", extra={"closed": len(sockets)})

    # ──────────────────────────────────────────────────────────────
    # Connections
    # ──────────────────────────────────────────────────────────────

    async def connect(
        self,
        websocket: WebSocket,
        user_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Accept ``websocket`` for ``user_id`` and return its connection id.

        Raises:
            ConnectionRefusedError: Instance or per-user capacity is used up.
                The socket is left unaccepted.
        """
        self._check_capacity(user_id)
        await websocket.accept()

        info = ConnectionInfo(
            connection_id=uuid4().hex,
            websocket=websocket,
            user_id=user_id,
            metadata=metadata or {},
        )
        self._index(info)
        logger.info(
            "Socket opened",
            extra={
                "connection_id": info.connection_id,
                "user_id": user_id,
                "user_sockets": self.connection_count_for(user_id),
            },
        )
        return info.connection_id

    async def disconnect(self, connection_id: str) -> None:
        info = self._unindex(connection_id)
        if info is None:
            return
        with contextlib.suppress(Exception):
            await info.websocket.close()
        logger.info(
            "Socket closed",
            extra={
                "connection_id": connection_id,
                "user_id": info.user_id,
                "duration_seconds": round(time.time() - info.connected_at, 3),
            },
        )

    def touch(self, connection_id: str) -> None:
        """Mark the socket alive; any client frame counts."""
        info = self._sockets.get(connection_id)
        if info is not None:
            info.last_seen = time.time()

    def get_connection(self, connection_id: str) -> ConnectionInfo | None:
        return self._sockets.get(connection_id)

    def is_user_connected(self, user_id: str) -> bool:
        return user_id in self._by_user

    def connection_count_for(self, user_id: str) -> int:
        return len(self._by_user.get(user_id, ()))

    # ──────────────────────────────────────────────────────────────
    # Sending
    # ──────────────────────────────────────────────────────────────

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        """Write ``message`` to one socket; a failed write evicts the socket."""
        info = self._sockets.get(connection_id)
        if info is None:
            return False
        try:
            await info.websocket.send_json(message)
        except Exception as e:
            logger.warning(
                "Socket write failed, evicting",
                extra={"connection_id": connection_id, "user_id": info.user_id, "error": str(e)},
            )
            await self.disconnect(connection_id)
            return False
        return True

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        """Write ``message`` to every socket of ``user_id``; returns how many took it."""
        targets = tuple(self._by_user.get(user_id, ()))
        sent = 0
        for connection_id in targets:
            sent += await self.send_to_connection(connection_id, message)
        return sent

    # ──────────────────────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────────────────────

    def _check_capacity(self, user_id: str) -> None:
        limit = self._settings.max_connections
        if len(self._sockets) >= limit:
            logger.warning("Socket refused, instance full", extra={"limit": limit})
            raise ConnectionRefusedError("Maximum connections reached")

        per_user = self._settings.max_connections_per_user
        if self.connection_count_for(user_id) >= per_user:
            logger.warning(
                "Socket refused, user at limit", extra={"user_id": user_id, "limit": per_user}
            )
            raise ConnectionRefusedError("Maximum connections per user reached")

    def _index(self, info: ConnectionInfo) -> None:
        self._sockets[info.connection_id] = info
        self._by_user.setdefault(info.user_id, set()).add(info.connection_id)
        self._publish_gauges()

    def _unindex(self, connection_id: str) -> ConnectionInfo | None:
        info = self._sockets.pop(connection_id, None)
        if info is None:
            return None
        ids = self._by_user.get(info.user_id, set())
        ids.discard(connection_id)
        if not ids:
            self._by_user.pop(info.user_id, None)
        self._publish_gauges()
        return info

    def _publish_gauges(self) -> None:
        websocket_connections_total.set(len(self._sockets))
        websocket_connected_users.set(len(self._by_user))

    async def _sweep(self) -> None:
        """Evict sockets idle past the timeout and ping the rest."""
        now = time.time()
        timeout = self._settings.connection_timeout
        for info in list(self._sockets.values()):
            if timeout > 0 and info.idle_for(now) > timeout:
                logger.warning(
                    "Socket idle past timeout",
                    extra={"connection_id": info.connection_id, "user_id": info.user_id},
                )
                await self.disconnect(info.connection_id)
            else:
                await self.send_to_connection(info.connection_id, PING)

    async def _heartbeat_loop(self, interval: float) -> None:
        while self._running:
            await asyncio.sleep(interval)
            try:
                await self._sweep()
            except Exception:
                logger.exception("Heartbeat sweep failed")


_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Return the process-wide manager.

    Raises:
        RuntimeError: Before ``start_connection_manager`` has run.
    """
    if _manager is None:
        raise RuntimeError(
            "Connection manager not initialized. Call start_connection_manager() first."
        )
    return _manager


async def start_connection_manager() -> ConnectionManager:
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    await _manager.start()
    return _manager


async def stop_connection_manager() -> None:
    global _manager
    if _manager is not None:
        await _manager.stop()
        _manager = None
