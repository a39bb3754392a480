"""Lazily fetched stream of result rows."""

from __future__ import annotations

from collections import deque
from enum import Enum, auto
from typing import Callable

from . import messages
from .errors import unexpected
from .messages import Record, Success
from .row import Row


class _State(Enum):
    READY = auto()
    STREAMING = auto()
    BUFFERED = auto()
    COMPLETE = auto()


class RowStream:
    """Rows of one query, pulled from the server in batches of ``fetch_size``.

    ``release`` is called once, when the stream is exhausted or fails.
    """

    def __init__(self, qid: int, fields, fetch_size: int, connection,
                 release: Callable[[], None] | None = None) -> None:
        self.qid = qid
        self.fields = list(fields)
        self.fetch_size = fetch_size
        self.release = release
        self._connection = connection
        self._state = _State.READY
        self._buffer: deque[Row] = deque()

    async def next(self) -> Row | None:
        """The next row, or None once the stream is exhausted."""
        try:
            async with self._connection.lock:
                row = await self._advance()
        except BaseException:
            self._finish()
            raise
        if row is None:
            self._finish()
        return row

    def _finish(self) -> None:
        release, self.release = self.release, None
        if release is not None:
            release()

    async def _advance(self) -> Row | None:
        while True:
            if self._state is _State.READY:
                await self._connection.send(messages.pull(self.fetch_size, self.qid))
                self._state = _State.STREAMING
            elif self._state is _State.STREAMING:
                response = await self._connection.recv()
                if isinstance(response, Success):
                    more = response.get("has_more", False) is True
                    self._state = _State.BUFFERED if more else _State.COMPLETE
                elif isinstance(response, Record):
                    self._buffer.append(Row(self.fields, response.data))
                else:
                    raise unexpected(response, "PULL")
            elif self._state is _State.BUFFERED:
                if self._buffer:
                    return self._buffer.popleft()
                self._state = _State.READY
            else:
                return self._buffer.popleft() if self._buffer else None

    def __aiter__(self) -> RowStream:
        return self

    async def __anext__(self) -> Row:
        row = await self.next()
        if row is None:
            raise StopAsyncIteration
        return row