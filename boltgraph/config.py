"""Connection settings and the builder that produces them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidConfig

DEFAULT_FETCH_SIZE = 200
DEFAULT_MAX_CONNECTIONS = 16


@dataclass(frozen=True)
class Config:
    """Settings used to connect to the database."""

    uri: str
    user: str
    password: str = field(repr=False)
    max_connections: int
    db: str
    fetch_size: int


class ConfigBuilder:
    """Immutable builder: every setter returns a new builder."""

    __slots__ = ("_settings",)

    def __init__(
        self,
        *,
        uri: str | None = None,
        user: str | None = None,
        password: str | None = None,
        db: str | None = None,
        fetch_size: int | None = None,
        max_connections: int | None = None,
    ) -> None:
        self._settings: dict[str, Any] = {
            "uri": uri,
            "user": user,
            "password": password,
            "db": db,
            "fetch_size": fetch_size,
            "max_connections": max_connections,
        }

    def _with(self, **changes: Any) -> ConfigBuilder:
        return ConfigBuilder(**{**self._settings, **changes})

    def uri(self, uri: str) -> ConfigBuilder:
        """Address of the server, as host:port."""
        return self._with(uri=uri)

    def user(self, user: str) -> ConfigBuilder:
        """User name for authentication."""
        return self._with(user=user)

    def password(self, password: str) -> ConfigBuilder:
        """Password for authentication."""
        return self._with(password=password)

    def db(self, db: str) -> ConfigBuilder:
        """Name of the database; empty means the server default."""
        return self._with(db=db)

    def fetch_size(self, fetch_size: int) -> ConfigBuilder:
        """Number of rows fetched from the server in one request."""
        return self._with(fetch_size=fetch_size)

    def max_connections(self, max_connections: int) -> ConfigBuilder:
        """Maximum number of connections kept in the pool."""
        return self._with(max_connections=max_connections)

    def build(self) -> Config:
        """Produce the config, raising InvalidConfig if any setting is missing."""
        if any(value is None for value in self._settings.values()):
            raise InvalidConfig()
        return Config(**self._settings)


def config() -> ConfigBuilder:
    """A builder with defaults for everything except the address and credentials."""
    return ConfigBuilder(
        db="",
        max_connections=DEFAULT_MAX_CONNECTIONS,
        fetch_size=DEFAULT_FETCH_SIZE,
    )