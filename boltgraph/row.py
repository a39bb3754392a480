"""Rows of query results and the graph values they carry."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .errors import ConversionError, DeserializationError
from .packstream import (
    NODE,
    PATH,
    POINT_2D,
    POINT_3D,
    RELATIONSHIP,
    UNBOUND_RELATIONSHIP,
    Structure,
    convert,
)


@dataclass(frozen=True)
class Node:
    """Snapshot of a node within the graph."""

    id: int
    labels: list = field(default_factory=list)
    properties: dict = field(default_factory=dict)

    def get(self, key: str, kind: Any = None) -> Any:
        """Property ``key``, converted to ``kind`` if given; None if absent or mismatched."""
        return _lookup(self.properties, key, kind)

    def get_json(self) -> dict | None:
        """Properties as a JSON-compatible dict, or None if they cannot be expressed so."""
        try:
            return json.loads(json.dumps(self.properties))
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class Relation:
    """Snapshot of a relationship between two nodes."""

    id: int
    start_node_id: int
    end_node_id: int
    typ: str
    properties: dict = field(default_factory=dict)

    def get(self, key: str, kind: Any = None) -> Any:
        """Property ``key``, converted to ``kind`` if given; None if absent or mismatched."""
        return _lookup(self.properties, key, kind)


@dataclass(frozen=True)
class UnboundedRelation:
    """Relationship detail without start or end node."""

    id: int
    typ: str
    properties: dict = field(default_factory=dict)

    def get(self, key: str, kind: Any = None) -> Any:
        """Property ``key``, converted to ``kind`` if given; None if absent or mismatched."""
        return _lookup(self.properties, key, kind)


class Path:
    """Alternating sequence of nodes and relationships."""

    def __init__(self, nodes, rels, indices=()) -> None:
        self._nodes = tuple(nodes)
        self._rels = tuple(rels)
        self.indices = tuple(indices)

    def ids(self) -> list[int]:
        """Ids of the nodes in the path."""
        return [node.id for node in self._nodes]

    def nodes(self) -> list[Node]:
        return list(self._nodes)

    def rels(self) -> list[UnboundedRelation]:
        return list(self._rels)

    def __repr__(self) -> str:
        return f"Path(nodes={self._nodes!r}, rels={self._rels!r}, indices={self.indices!r})"


@dataclass(frozen=True)
class Point2D:
    """A location in 2-dimensional space."""

    sr_id: int
    x: float
    y: float


@dataclass(frozen=True)
class Point3D:
    """A location in 3-dimensional space."""

    sr_id: int
    x: float
    y: float
    z: float


_GRAPH_TYPES = (Node, Relation, UnboundedRelation, Path, Point2D, Point3D)


def _lookup(mapping: dict, key: str, kind: Any) -> Any:
    if key not in mapping:
        return None
    value = mapping[key]
    if kind is None:
        return value
    if kind in _GRAPH_TYPES:
        return value if isinstance(value, kind) else None
    try:
        return convert(value, kind)
    except ConversionError:
        return None


def hydrate(value: Any) -> Any:
    """Turn graph and point structures, however nested, into their Python classes."""
    if isinstance(value, list):
        return [hydrate(item) for item in value]
    if isinstance(value, dict):
        return {key: hydrate(item) for key, item in value.items()}
    if not isinstance(value, Structure):
        return value
    fields = value.fields
    try:
        if value.tag == NODE:
            node_id, labels, props = fields
            return Node(node_id, list(labels), hydrate(props))
        if value.tag == RELATIONSHIP:
            rel_id, start, end, typ, props = fields
            return Relation(rel_id, start, end, typ, hydrate(props))
        if value.tag == UNBOUND_RELATIONSHIP:
            rel_id, typ, props = fields
            return UnboundedRelation(rel_id, typ, hydrate(props))
        if value.tag == PATH:
            nodes, rels, indices = fields
            return Path(hydrate(nodes), hydrate(rels), indices)
        if value.tag == POINT_2D:
            return Point2D(*fields)
        if value.tag == POINT_3D:
            return Point3D(*fields)
    except (TypeError, ValueError) as exc:
        raise DeserializationError(f"malformed structure 0x{value.tag:02X}: {exc}") from exc
    return value


class Row:
    """One result row, keyed by field name."""

    def __init__(self, fields, data) -> None:
        self._attributes = {
            name: hydrate(item)
            for name, item in zip(fields, data)
            if isinstance(name, str)
        }

    def get(self, key: str, kind: Any = None) -> Any:
        """Value of ``key``, converted to ``kind`` if given; None if absent or mismatched."""
        return _lookup(self._attributes, key, kind)

    def keys(self) -> list[str]:
        return list(self._attributes)

    def __repr__(self) -> str:
        return f"Row({self._attributes!r})"