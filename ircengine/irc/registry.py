"""Process-wide set of live connections."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterator
from concurrent.futures import Future
from typing import TYPE_CHECKING

from ..logs.logger import logger

if TYPE_CHECKING:  # pragma: no cover
    from .connection import Connection


class ConnectionRegistry:
    """Thread-safe collection of connections whose worker is alive.

    Connections add themselves when their worker starts and remove
    themselves when it ends. Readers always get a snapshot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: list[Connection] = []

    def add(self, connection: Connection) -> None:
        with self._lock:
            if connection in self._connections:
                return
            self._connections.append(connection)
        logger.log_event(
            "registry", "added", level=logging.DEBUG, user=connection.name
        )

    def remove(self, connection: Connection) -> bool:
        with self._lock:
            try:
                self._connections.remove(connection)
            except ValueError:
                return False
        logger.log_event(
            "registry", "removed", level=logging.DEBUG, user=connection.name
        )
        return True

    def snapshot(self) -> list[Connection]:
        with self._lock:
            return list(self._connections)

    def get(self, name: str) -> Connection | None:
        for connection in self.snapshot():
            if connection.name == name:
                return connection
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        with self._lock:
            return connection in self._connections

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    async def quit_all(self, reason: str | None = None) -> None:
        connections = self.snapshot()
        logger.log_event("registry", "quit_all", count=len(connections))
        for connection in connections:
            await connection.quit(reason)

    def quit_all_threadsafe(
        self, loop: asyncio.AbstractEventLoop, reason: str | None = None
    ) -> Future[None]:
        """Request ``quit_all`` from a thread other than the loop's."""
        return asyncio.run_coroutine_threadsafe(self.quit_all(reason), loop)

    async def wait_all(self) -> None:
        """Return once every registered worker, including late additions, ended."""
        waited: set[int] = set()
        while True:
            pending = [c for c in self.snapshot() if id(c) not in waited]
            if not pending:
                return
            waited.update(id(c) for c in pending)
            await asyncio.gather(*(c.wait() for c in pending))
