"""Bolt request and response messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from .errors import DeserializationError, UnknownMessage
from .packstream import Structure, pack, unpack


class Signature(IntEnum):
    """Structure tags that identify Bolt messages."""

    HELLO = 0x01
    GOODBYE = 0x02
    RESET = 0x0F
    RUN = 0x10
    BEGIN = 0x11
    COMMIT = 0x12
    ROLLBACK = 0x13
    DISCARD = 0x2F
    PULL = 0x3F
    SUCCESS = 0x70
    RECORD = 0x71
    FAILURE = 0x7F


@dataclass(frozen=True)
class Request:
    """A message sent from the client to the server."""

    signature: Signature
    fields: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))

    def to_bytes(self) -> bytes:
        """Encode the message as a PackStream structure."""
        return pack(Structure(int(self.signature), self.fields))


@dataclass(frozen=True)
class Success:
    """Summary sent by the server when a request succeeded."""

    metadata: dict = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Value stored under ``key`` in the metadata, or ``default``."""
        return self.metadata.get(key, default)


@dataclass(frozen=True)
class Failure:
    """Summary sent by the server when a request failed."""

    metadata: dict = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Value stored under ``key`` in the metadata, or ``default``."""
        return self.metadata.get(key, default)


@dataclass(frozen=True)
class Record:
    """One row of values streamed by the server."""

    data: list = field(default_factory=list)


Response = Success | Failure | Record

_RESPONSE_TYPES: dict[int, tuple[type, type]] = {
    Signature.SUCCESS: (Success, dict),
    Signature.FAILURE: (Failure, dict),
    Signature.RECORD: (Record, list),
}

_ONE_FIELD_STRUCT = 0xB1


def hello(agent: str, principal: str, credentials: str) -> Request:
    """Initialise the connection with basic authentication."""
    extra = {
        "user_agent": agent,
        "scheme": "basic",
        "principal": principal,
        "credentials": credentials,
    }
    return Request(Signature.HELLO, (extra,))


def run(db: str, query: str, params: dict | None = None) -> Request:
    """Run a query against the given database."""
    return Request(Signature.RUN, (query, dict(params or {}), {"db": db}))


def pull(n: int = -1, qid: int = -1) -> Request:
    """Fetch up to ``n`` records of query ``qid``; -1 means all / the last query."""
    return Request(Signature.PULL, ({"n": n, "qid": qid},))


def discard(n: int = -1, qid: int = -1) -> Request:
    """Discard up to ``n`` records of query ``qid``; -1 means all / the last query."""
    return Request(Signature.DISCARD, ({"n": n, "qid": qid},))


def begin(extra: dict | None = None) -> Request:
    """Open an explicit transaction."""
    return Request(Signature.BEGIN, (dict(extra or {}),))


def commit() -> Request:
    """Commit the open transaction."""
    return Request(Signature.COMMIT)


def rollback() -> Request:
    """Roll back the open transaction."""
    return Request(Signature.ROLLBACK)


def reset() -> Request:
    """Return the connection to a clean state."""
    return Request(Signature.RESET)


def bye() -> Request:
    """Announce that the client is closing the connection."""
    return Request(Signature.GOODBYE)


def parse_response(data: bytes | bytearray | memoryview) -> Response:
    """Decode a message received from the server."""
    raw = bytes(data)
    if len(raw) < 2 or raw[0] != _ONE_FIELD_STRUCT or raw[1] not in _RESPONSE_TYPES:
        raise UnknownMessage(f"unknown message {raw!r}")
    structure = unpack(raw)
    response_type, field_type = _RESPONSE_TYPES[raw[1]]
    (payload,) = structure.fields
    if not isinstance(payload, field_type):
        raise DeserializationError(
            f"{response_type.__name__} expects a {field_type.__name__}, "
            f"got {type(payload).__name__}"
        )
    return response_type(payload)