"""A bounded pool of reusable connections."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable

from .connection import Connection, open_connection
from .errors import InvalidConfig, Neo4jError

log = logging.getLogger(__name__)


class ConnectionPool:
    """Hands out at most ``max_size`` connections, resetting idle ones before reuse."""

    def __init__(self, factory: Callable[[], Awaitable[Connection]], max_size: int) -> None:
        if max_size < 1:
            raise InvalidConfig("max_connections must be at least 1")
        self._factory = factory
        self.max_size = max_size
        self._idle: deque = deque()
        self._slots = asyncio.Semaphore(max_size)

    async def acquire(self) -> Connection:
        """Take a connection, waiting while all are in use."""
        await self._slots.acquire()
        try:
            while self._idle:
                connection = self._idle.popleft()
                try:
                    await connection.reset()
                    return connection
                except Neo4jError:
                    await _discard(connection)
            log.info("creating new connection...")
            return await self._factory()
        except BaseException:
            self._slots.release()
            raise

    def release(self, connection: Connection) -> None:
        """Give a connection back for reuse."""
        self._idle.append(connection)
        self._slots.release()

    async def close(self) -> None:
        """Close every idle connection."""
        while self._idle:
            await _discard(self._idle.popleft())


async def _discard(connection: Connection) -> None:
    try:
        await connection.close()
    except Exception:  # a broken connection is being thrown away anyway
        pass


def create_pool(config) -> ConnectionPool:
    """A pool that opens connections with the address and credentials of ``config``."""
    log.info("creating connection pool with max size %d", config.max_connections)
    return ConnectionPool(
        lambda: open_connection(config.uri, config.user, config.password),
        config.max_connections,
    )