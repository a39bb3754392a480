"""Cypher queries with parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from . import messages
from .errors import unexpected
from .messages import Success
from .stream import RowStream


@dataclass(frozen=True)
class Query:
    """A Cypher query and its parameters; adding parameters returns a new query."""

    text: str
    parameters: dict = field(default_factory=dict)

    def param(self, key: str, value: Any) -> Query:
        return Query(self.text, {**self.parameters, key: value})

    def params(self, mapping: Mapping[str, Any]) -> Query:
        return Query(self.text, {**self.parameters, **mapping})

    async def run(self, config, connection) -> None:
        """Run the query and discard its results."""
        request = messages.run(config.db, self.text, self.parameters)
        async with connection.lock:
            response = await connection.send_recv(request)
            if not isinstance(response, Success):
                raise unexpected(response, "RUN")
            response = await connection.send_recv(messages.discard())
            if not isinstance(response, Success):
                raise unexpected(response, "DISCARD")

    async def execute(self, config, connection) -> RowStream:
        """Run the query and return a stream over its rows."""
        request = messages.run(config.db, self.text, self.parameters)
        async with connection.lock:
            response = await connection.send_recv(request)
        if not isinstance(response, Success):
            raise unexpected(response, "RUN")
        fields = response.get("fields")
        qid = response.get("qid")
        if not isinstance(fields, list):
            fields = []
        if not isinstance(qid, int) or isinstance(qid, bool):
            qid = -1
        return RowStream(qid, fields, config.fetch_size, connection)