import asyncio
from collections import deque

import pytest

from boltgraph import messages
from boltgraph.errors import UnexpectedMessage
from boltgraph.messages import Failure, Record, Success
from boltgraph.stream import RowStream


class _Conn:
    def __init__(self, responses):
        self.lock = asyncio.Lock()
        self.sent = []
        self.responses = deque(responses)

    async def send(self, request):
        self.sent.append(request)

    async def recv(self):
        return self.responses.popleft()


@pytest.mark.asyncio
async def test_fetches_in_batches():
    conn = _Conn([
        Record([1]), Record([2]), Success({"has_more": True}),
        Record([3]), Success({}),
    ])
    released = []
    stream = RowStream(5, ["n"], 2, conn, lambda: released.append(True))
    values = [row.get("n") async for row in stream]
    assert values == [1, 2, 3]
    assert conn.sent == [messages.pull(2, 5), messages.pull(2, 5)]
    assert released == [True]
    assert await stream.next() is None
    assert released == [True]


@pytest.mark.asyncio
async def test_empty_result():
    conn = _Conn([Success({})])
    stream = RowStream(-1, [], 10, conn)
    assert await stream.next() is None


@pytest.mark.asyncio
async def test_failure_raises_and_releases():
    conn = _Conn([Failure({"message": "bad"})])
    released = []
    stream = RowStream(-1, ["n"], 10, conn, lambda: released.append(True))
    with pytest.raises(UnexpectedMessage):
        await stream.next()
    assert released == [True]