"""Errors raised by the driver."""

from __future__ import annotations

from typing import Any


class Neo4jError(Exception):
    """Base class of every error raised by this package."""

    default_message = "driver error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class BoltIOError(Neo4jError):
    """Reading from or writing to the server socket failed."""

    default_message = "an IO error occurred"

    def __init__(self, detail: str) -> None:
        super().__init__()
        self.detail = detail


class BoltConnectionError(Neo4jError):
    """A connection could not be obtained."""

    default_message = "connection error"


class StringTooLong(Neo4jError):
    default_message = "attempted to serialize excessively long string"


class MapTooBig(Neo4jError):
    default_message = "attempted to serialize excessively large map"


class BytesTooBig(Neo4jError):
    default_message = "attempted to serialize excessively large byte array"


class ListTooLong(Neo4jError):
    default_message = "attempted to serialize excessively long list"


class InvalidConfig(Neo4jError):
    default_message = "invalid config"


class UnsupportedVersion(Neo4jError):
    default_message = "unsupported version"


class UnexpectedMessage(Neo4jError):
    default_message = "unexpected message"


class UnknownType(Neo4jError):
    default_message = "unknown type"


class UnknownMessage(Neo4jError):
    default_message = "unknown message"


class ConversionError(Neo4jError):
    default_message = "conversion error"


class AuthenticationError(Neo4jError):
    default_message = "authentication failed"


class InvalidTypeMarker(Neo4jError):
    default_message = "invalid type marker"


class DeserializationError(Neo4jError):
    default_message = "deserialization error"


def unexpected(response: Any, request: str) -> UnexpectedMessage:
    """Build the error for a response that does not fit the request sent."""
    return UnexpectedMessage(f"unexpected response for {request}: {response!r}")