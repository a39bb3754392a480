"""A single Bolt connection over TCP."""

from __future__ import annotations

import asyncio
import struct

from . import messages
from .errors import (
    AuthenticationError,
    BoltConnectionError,
    BoltIOError,
    Neo4jError,
    UnsupportedVersion,
    unexpected,
)
from .messages import Failure, Request, Response, Success, parse_response

MAX_CHUNK_SIZE = 65_535 - 2
USER_AGENT = "boltgraph"
SUPPORTED_VERSIONS = ((4, 1), (4, 0))

_MAGIC = b"\x60\x60\xB0\x17"
_END_MARKER = b"\x00\x00"


def _proposal() -> bytes:
    offered = [bytes((0, 0, minor, major)) for major, minor in SUPPORTED_VERSIONS]
    offered += [bytes(4)] * (4 - len(offered))
    return b"".join(offered)


class Connection:
    """Framed message exchange with the server."""

    def __init__(self, reader, writer, version=(4, 1)) -> None:
        self.reader = reader
        self.writer = writer
        self.version = version
        self.lock = asyncio.Lock()

    async def reset(self) -> None:
        """Return the connection to a clean state."""
        response = await self.send_recv(messages.reset())
        if not isinstance(response, Success):
            raise unexpected(response, "RESET")

    async def send_recv(self, request: Request) -> Response:
        await self.send(request)
        return await self.recv()

    async def send(self, request: Request) -> None:
        data = request.to_bytes()
        out = bytearray()
        for start in range(0, len(data), MAX_CHUNK_SIZE):
            chunk = data[start:start + MAX_CHUNK_SIZE]
            out += struct.pack(">H", len(chunk))
            out += chunk
        out += _END_MARKER
        try:
            self.writer.write(bytes(out))
            await self.writer.drain()
        except OSError as exc:
            raise BoltIOError(str(exc)) from exc

    async def recv(self) -> Response:
        size = 0
        while size == 0:
            size = await self._read_u16()
        parts = []
        while size:
            parts.append(await self._read(size))
            size = await self._read_u16()
        return parse_response(b"".join(parts))

    async def close(self) -> None:
        """Say goodbye and close the socket, ignoring failures."""
        try:
            await self.send(messages.bye())
        except Neo4jError:
            pass
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except OSError:
            pass

    async def _read(self, size: int) -> bytes:
        try:
            return await self.reader.readexactly(size)
        except (asyncio.IncompleteReadError, OSError) as exc:
            raise BoltIOError(str(exc)) from exc

    async def _read_u16(self) -> int:
        return struct.unpack(">H", await self._read(2))[0]


async def open_connection(uri: str, user: str, password: str) -> Connection:
    """Connect to ``host:port``, agree on a version and authenticate."""
    host, _, port = uri.rpartition(":")
    if not host or not port.isdigit():
        raise BoltConnectionError(f"invalid address: {uri}")
    try:
        reader, writer = await asyncio.open_connection(host, int(port))
    except OSError as exc:
        raise BoltIOError(str(exc)) from exc
    connection = Connection(reader, writer)
    try:
        try:
            writer.write(_MAGIC + _proposal())
            await writer.drain()
        except OSError as exc:
            raise BoltIOError(str(exc)) from exc
        agreed = await connection._read(4)
        version = (agreed[3], agreed[2])
        if version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersion(f"unsupported version {version[0]}.{version[1]}")
        connection.version = version
        response = await connection.send_recv(messages.hello(USER_AGENT, user, password))
        if isinstance(response, Failure):
            raise AuthenticationError(response.get("message"))
        if not isinstance(response, Success):
            raise unexpected(response, "HELLO")
    except BaseException:
        writer.close()
        raise
    return connection