"""Asyncio client for Neo4j graph databases over the Bolt protocol."""

__version__ = "0.1.0"

__all__ = [
    "config",
    "connection",
    "errors",
    "graph",
    "messages",
    "packstream",
    "pool",
    "query",
    "row",
    "stream",
    "txn",
]