# boltgraph

An asyncio client for Neo4j 4.x servers. It speaks the Bolt protocol
(versions 4.0 and 4.1) directly over TCP and encodes values with
PackStream, using nothing beyond the Python standard library.

Features:

* a pool of authenticated connections (16 by default), reset before reuse
* queries with parameters, run for their side effects or streamed row by row
* results fetched from the server in batches (200 rows by default)
* explicit transactions with commit and rollback
* nodes, relationships, paths, 2D/3D points, bytes, temporal values and durations

## Installation

```
pip install boltgraph
```

Python 3.10 or later is required.

## Connecting

`Graph.open` takes an address (`host:port`), a user name and a password;
every other setting keeps its default.

```python
import asyncio

from boltgraph.graph import Graph, query


async def main():
    password = "password"
    graph = await Graph.open("127.0.0.1:7687", "neo4j", password)
    try:
        await graph.run(query("CREATE (p:Person {name: $name})").param("name", "Mark"))

        stream = await graph.execute(query("MATCH (p:Person) RETURN p"))
        async for row in stream:
            node = row.get("p")
            print(node.id, node.labels, node.get("name"))
    finally:
        await graph.close()


asyncio.run(main())
```

`Graph.run` sends the query and discards any result. `Graph.execute` returns
a `RowStream`; each `await stream.next()` gives the next `Row`, or `None`
once the stream is exhausted, and the stream can also be read with
`async for`. Rows are pulled from the server in batches of `fetch_size` as
the stream is read. The connection used by `Graph.execute` goes back to the
pool when the stream is exhausted or fails, so read streams to the end.

Connections are opened lazily, the first time a query needs one.
`Graph.close` closes the idle connections held by the pool.

## Configuration

Use the builder returned by `boltgraph.config.config()` to change the
defaults. Every setter returns a new builder.

| setting           | default |
|-------------------|---------|
| `db`              | `""` (the server's default database) |
| `fetch_size`      | `200`   |
| `max_connections` | `16`    |

```python
from boltgraph.config import config
from boltgraph.graph import Graph

password = "password"
settings = (
    config()
    .uri("127.0.0.1:7687")
    .user("neo4j")
    .password(password)
    .db("neo4j")
    .fetch_size(500)
    .max_connections(10)
    .build()
)
graph = await Graph.connect(settings)
```

`build()` raises `boltgraph.errors.InvalidConfig` when the address, user or
password is missing. A pool with `max_connections` below 1 is rejected with
the same error.

## Parameters

`Query.param` adds one parameter and `Query.params` adds every entry of a
mapping; both return a new query, so calls can be chained.

```python
q = query("MATCH (p:Person) WHERE p.age > $age AND p.city = $city RETURN p")
q = q.params({"age": 30, "city": "Lyon"})
```

Parameter values may be `None`, `bool`, `int` (64-bit), `float`, `str`,
`bytes`, lists, string-keyed dicts, `datetime.date`, `datetime.datetime`
(naive, with a fixed offset, or with a `zoneinfo.ZoneInfo` zone),
`datetime.time` (naive or with an offset) and `datetime.timedelta`.

## Transactions

`Graph.start_txn` takes a connection from the pool and begins a transaction
on it. Every query run through the `Txn` uses that same connection, and the
connection goes back to the pool after `commit()` or `rollback()`. Using a
transaction after that raises `Neo4jError`.

```python
txn = await graph.start_txn()
await txn.run_queries([
    query("CREATE (p:Person {id: $id})").param("id", "a"),
    query("CREATE (p:Person {id: $id})").param("id", "b"),
])
stream = await txn.execute(query("MATCH (p:Person) RETURN p.id"))
first = await stream.next()
await txn.commit()
```

Several streams may be opened inside one transaction and read in any order
until the transaction ends.

## Reading values

`Row.get(key)` returns the value as decoded; `Row.get(key, kind)` converts
it and returns `None` if the key is missing or the value does not fit.
`kind` may be `bool`, `int`, `float`, `str`, `bytes`, `datetime.date`,
`datetime.datetime`, `datetime.time`, `datetime.timedelta`, `list[...]`,
`dict[str, ...]` or one of the graph classes below. `Row.keys()` lists the
field names.

Graph values are turned into classes from `boltgraph.row`:

* `Node`: `id`, `labels`, `properties`, `get(key, kind)`, and `get_json()`
  for the properties as a JSON-compatible dict
* `Relation`: `id`, `start_node_id`, `end_node_id`, `typ`, `properties`,
  `get(key, kind)`
* `UnboundedRelation`: `id`, `typ`, `properties`, `get(key, kind)`
* `Path`: `ids()`, `nodes()` and `rels()`
* `Point2D` and `Point3D`: `sr_id`, `x`, `y` and, for 3D, `z`

A time with a zero offset is returned as a naive `datetime.time`. A duration
that has months cannot be converted to `timedelta`. Sub-microsecond precision
of temporal values is dropped.

## Lower layers

`boltgraph.packstream` offers `pack`, `unpack`, `unpack_stream`, `convert`
and the `Structure` type; `boltgraph.messages` builds Bolt requests and
parses responses; `boltgraph.connection.open_connection` opens a single
authenticated `Connection`.

## Errors

All errors derive from `boltgraph.errors.Neo4jError`. Among them:
`AuthenticationError` when the server rejects the credentials,
`UnsupportedVersion` when the server agrees on no supported protocol version,
`UnexpectedMessage` when the server answers a request in a way it should not,
`ConversionError` when a value cannot be encoded or converted,
and `BoltIOError` for failures on the socket.

## What it does not do

There is no TLS, no cluster routing (`neo4j://` addresses), no bookmarks or
transaction metadata, and no command-line tool; the package is a library
that talks to a single server by plain TCP.