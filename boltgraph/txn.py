"""Explicit transactions bound to one connection."""

from __future__ import annotations

from typing import Callable, Iterable

from . import messages
from .errors import Neo4jError, unexpected
from .messages import Request, Success
from .query import Query
from .stream import RowStream


class Txn:
    """An open transaction; the connection is released on commit or rollback."""

    def __init__(self, config, connection, release: Callable[[], None] | None = None) -> None:
        self._config = config
        self._connection = connection
        self._release = release
        self._closed = False

    async def run_queries(self, queries: Iterable[Query]) -> None:
        """Run several queries one after the other."""
        for q in queries:
            await self.run(q)

    async def run(self, q: Query) -> None:
        self._check_open()
        await q.run(self._config, self._connection)

    async def execute(self, q: Query) -> RowStream:
        self._check_open()
        return await q.execute(self._config, self._connection)

    async def commit(self) -> None:
        await self._finish(messages.commit(), "COMMIT")

    async def rollback(self) -> None:
        await self._finish(messages.rollback(), "ROLLBACK")

    def _check_open(self) -> None:
        if self._closed:
            raise Neo4jError("transaction is already closed")

    async def _finish(self, request: Request, name: str) -> None:
        self._check_open()
        self._closed = True
        try:
            async with self._connection.lock:
                response = await self._connection.send_recv(request)
        finally:
            release, self._release = self._release, None
            if release is not None:
                release()
        if not isinstance(response, Success):
            raise unexpected(response, name)


async def begin_txn(config, connection, release: Callable[[], None] | None = None) -> Txn:
    """Open a transaction on ``connection``."""
    try:
        async with connection.lock:
            response = await connection.send_recv(messages.begin())
        if not isinstance(response, Success):
            raise unexpected(response, "BEGIN")
    except BaseException:
        if release is not None:
            release()
        raise
    return Txn(config, connection, release)