"""Entry point: a database handle backed by a connection pool."""

from __future__ import annotations

from .config import Config
from .config import config as make_config
from .pool import ConnectionPool, create_pool
from .query import Query
from .stream import RowStream
from .txn import Txn, begin_txn


def query(q: str) -> Query:
    """A query to which parameters can be added with ``param``."""
    return Query(q)


class Graph:
    """A database handle; each run or execute borrows a pooled connection."""

    def __init__(self, config: Config, pool: ConnectionPool) -> None:
        self.config = config
        self.pool = pool

    @classmethod
    async def connect(cls, config: Config) -> Graph:
        """Create a handle with the given settings."""
        return cls(config, create_pool(config))

    @classmethod
    async def open(cls, uri: str, user: str, password: str) -> Graph:
        """Create a handle with default settings."""
        settings = make_config().uri(uri).user(user).password(password).build()
        return await cls.connect(settings)

    async def start_txn(self) -> Txn:
        """Begin a transaction on a dedicated connection."""
        connection = await self.pool.acquire()
        return await begin_txn(self.config, connection, lambda: self.pool.release(connection))

    async def run(self, q: Query) -> None:
        """Run a query, discarding its results."""
        connection = await self.pool.acquire()
        try:
            await q.run(self.config, connection)
        finally:
            self.pool.release(connection)

    async def execute(self, q: Query) -> RowStream:
        """Run a query; the connection returns to the pool once the stream is exhausted."""
        connection = await self.pool.acquire()
        try:
            stream = await q.execute(self.config, connection)
        except BaseException:
            self.pool.release(connection)
            raise
        stream.release = lambda: self.pool.release(connection)
        return stream

    async def close(self) -> None:
        await self.pool.close()