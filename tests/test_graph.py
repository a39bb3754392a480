import asyncio
from collections import deque

import pytest

from boltgraph import messages
from boltgraph.config import config
from boltgraph.errors import UnexpectedMessage
from boltgraph.graph import Graph, query
from boltgraph.messages import Failure, Record, Success
from boltgraph.pool import ConnectionPool


class _Conn:
    def __init__(self, responses):
        self.lock = asyncio.Lock()
        self.sent = []
        self.responses = responses

    async def send(self, request):
        self.sent.append(request)

    async def recv(self):
        return self.responses.popleft()

    async def send_recv(self, request):
        await self.send(request)
        return await self.recv()

    async def reset(self):
        self.sent.append(messages.reset())

    async def close(self):
        pass


def _graph(responses, max_size=1):
    made = []
    shared = deque(responses)

    async def factory():
        conn = _Conn(shared)
        made.append(conn)
        return conn

    password = "password"
    cfg = config().uri("h:1").user("u").password(password).build()
    return Graph(cfg, ConnectionPool(factory, max_size)), made


def test_query_helper():
    assert query("RETURN 1").param("a", 2).parameters == {"a": 2}


@pytest.mark.asyncio
async def test_execute_releases_after_exhaustion():
    graph, made = _graph([Success({"fields": ["1"]}), Record([1]), Success({}), Success({}), Success({})])
    stream = await graph.execute(query("RETURN 1"))
    row = await stream.next()
    assert row.get("1", int) == 1
    assert await stream.next() is None
    await asyncio.wait_for(graph.run(query("RETURN 1")), 1)
    assert len(made) == 1


@pytest.mark.asyncio
async def test_run_releases_on_error():
    graph, made = _graph([Failure({"message": "x"}), Success({}), Success({})])
    with pytest.raises(UnexpectedMessage):
        await graph.run(query("BAD"))
    await asyncio.wait_for(graph.run(query("OK")), 1)
    assert len(made) == 1


@pytest.mark.asyncio
async def test_start_txn_commits():
    graph, made = _graph([Success({}), Success({})])
    txn = await graph.start_txn()
    await txn.commit()
    assert made[0].sent == [messages.begin(), messages.commit()]


@pytest.mark.asyncio
async def test_open_builds_default_config():
    password = "password"
    graph = await Graph.open("127.0.0.1:7687", "neo4j", password)
    assert graph.config.uri == "127.0.0.1:7687"
    assert graph.config.fetch_size == 200
    assert graph.pool.max_size == 16
    await graph.close()