import asyncio

import pytest

from boltgraph.config import config
from boltgraph.errors import BoltIOError, InvalidConfig
from boltgraph.pool import ConnectionPool, create_pool


class _Conn:
    def __init__(self, fail_reset=False):
        self.resets = 0
        self.closed = False
        self.fail_reset = fail_reset

    async def reset(self):
        self.resets += 1
        if self.fail_reset:
            raise BoltIOError("gone")

    async def close(self):
        self.closed = True


def _factory(made, **kwargs):
    async def make():
        conn = _Conn(**kwargs)
        made.append(conn)
        return conn

    return make


@pytest.mark.asyncio
async def test_reuses_released_connection_after_reset():
    made = []
    pool = ConnectionPool(_factory(made), 2)
    first = await pool.acquire()
    pool.release(first)
    second = await pool.acquire()
    assert second is first
    assert first.resets == 1
    assert len(made) == 1


@pytest.mark.asyncio
async def test_limits_connections():
    pool = ConnectionPool(_factory([]), 1)
    held = await pool.acquire()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(pool.acquire(), 0.05)
    pool.release(held)
    assert await asyncio.wait_for(pool.acquire(), 1) is held


@pytest.mark.asyncio
async def test_failed_reset_replaces_connection():
    made = []
    pool = ConnectionPool(_factory(made, fail_reset=True), 1)
    broken = await pool.acquire()
    pool.release(broken)
    fresh = await pool.acquire()
    assert fresh is not broken
    assert broken.closed
    assert len(made) == 2


@pytest.mark.asyncio
async def test_close_closes_idle():
    pool = ConnectionPool(_factory([]), 1)
    conn = await pool.acquire()
    pool.release(conn)
    await pool.close()
    assert conn.closed


def test_invalid_size():
    with pytest.raises(InvalidConfig):
        ConnectionPool(_factory([]), 0)


def test_create_pool_uses_max_connections():
    password = "password"
    cfg = config().uri("127.0.0.1:7687").user("u").password(password).max_connections(3).build()
    assert create_pool(cfg).max_size == 3