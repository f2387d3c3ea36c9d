"""
In-memory document store with change streams and command monitoring.

Useful for testing and local runs of specification documents. Not a
database: documents are kept in dictionaries, filters support top-level and
dotted-path equality only, and pipelines support ``$match`` only.

The store is split the same way a real deployment is:

- InMemoryServer holds databases and fans change documents out to open
  change streams
- InMemoryClient is one connection to a server; it emits a command-started
  record for each command it sends, so several clients on one server have
  independent monitoring channels

Example:
    >>> server = InMemoryServer()
    >>> client = InMemoryClient(server)
    >>> stream = client.open_change_stream(ChangeStreamTarget.COLLECTION, "db", "coll", [], {})
    >>> task = asyncio.create_task(stream.read_next())
    >>> await client.collection("db", "coll").insert_one({"x": 1})
    >>> (await task)["operationType"]
    'insert'
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from bson import ObjectId, Timestamp
from pymongo.errors import InvalidOperation
from pymongo.results import DeleteResult, InsertOneResult

from changestream_spec.clients.interface import (
    ChangeStreamTarget,
    CommandStartedCallback,
    ServerInfo,
)
from changestream_spec.exceptions import StoreError

logger = logging.getLogger(__name__)

INTERNAL_DATABASES = frozenset({"admin", "config", "local"})

SUPPORTED_STAGES = frozenset({"$match"})

# Server error codes reproduced by the in-memory store
CODE_NAMESPACE_EXISTS = 48
CODE_DUPLICATE_KEY = 11000
CODE_UNRECOGNIZED_STAGE = 40324
CODE_CHANGE_STREAM_REPLICA_SET = 40573

# Queued after the last change of a stream whose cursor the server closed
_CURSOR_EXHAUSTED = object()


def _lookup(document: Mapping[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return value


def _filter_matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    return all(_lookup(document, path) == value for path, value in filter.items())


class InMemoryServer:
    """
    Shared state of an in-memory deployment.

    Args:
        version: Server version reported to requirement checks
        topology: 'single', 'replicaset' or 'sharded'. Change streams are
            rejected on 'single', as a standalone server rejects them.

    Attributes:
        streams: Change streams currently registered (read-only)
    """

    def __init__(
        self,
        *,
        version: tuple[int, ...] = (4, 2, 0),
        topology: str = "replicaset",
    ) -> None:
        self.version = version
        self.topology = topology
        self._databases: dict[str, dict[str, list[dict[str, Any]]]] = {}
        self._streams: list[InMemoryChangeSubscription] = []
        self._clock = itertools.count(1)
        self._cursor_ids = itertools.count(1000)

    @property
    def streams(self) -> list[InMemoryChangeSubscription]:
        return list(self._streams)

    def server_info(self) -> ServerInfo:
        return ServerInfo(version=self.version, topology=self.topology)

    def documents(self, database: str, collection: str) -> list[dict[str, Any]]:
        """Copy of the documents stored in database.collection."""
        return copy.deepcopy(self._databases.get(database, {}).get(collection, []))

    def has_collection(self, database: str, collection: str) -> bool:
        return collection in self._databases.get(database, {})

    def interrupt_streams(self, error: BaseException) -> None:
        """Fail the pending or next read of every registered change stream."""
        for stream in list(self._streams):
            stream._deliver(error)

    # Storage primitives

    def _collection(self, database: str, collection: str) -> list[dict[str, Any]]:
        return self._databases.setdefault(database, {}).setdefault(collection, [])

    def create_collection(self, database: str, collection: str) -> None:
        if self.has_collection(database, collection):
            raise StoreError(
                CODE_NAMESPACE_EXISTS,
                f"Collection already exists. NS: {database}.{collection}",
                "NamespaceExists",
            )
        self._collection(database, collection)

    def drop_database(self, database: str) -> None:
        self._databases.pop(database, None)

    def insert(self, database: str, collection: str, document: dict[str, Any]) -> Any:
        documents = self._collection(database, collection)
        if any(existing["_id"] == document["_id"] for existing in documents):
            raise StoreError(
                CODE_DUPLICATE_KEY,
                f"E11000 duplicate key error collection: {database}.{collection} "
                f"index: _id_ dup key: {{ _id: {document['_id']!r} }}",
                "DuplicateKey",
            )
        documents.append(copy.deepcopy(document))
        self._publish(
            database,
            collection,
            {
                "operationType": "insert",
                "fullDocument": copy.deepcopy(document),
                "documentKey": {"_id": document["_id"]},
            },
        )
        return document["_id"]

    def delete(
        self, database: str, collection: str, filter: Mapping[str, Any], limit: int
    ) -> int:
        documents = self._databases.get(database, {}).get(collection, [])
        deleted = 0
        for document in list(documents):
            if limit and deleted >= limit:
                break
            if _filter_matches(document, filter):
                documents.remove(document)
                deleted += 1
                self._publish(
                    database,
                    collection,
                    {"operationType": "delete", "documentKey": {"_id": document["_id"]}},
                )
        return deleted

    def count(self, database: str, collection: str, filter: Mapping[str, Any]) -> int:
        documents = self._databases.get(database, {}).get(collection, [])
        return sum(1 for document in documents if _filter_matches(document, filter))

    def drop_collection(self, database: str, collection: str) -> None:
        if not self.has_collection(database, collection):
            return
        del self._databases[database][collection]
        self._publish(database, collection, {"operationType": "drop"})
        self._publish(database, collection, {"operationType": "invalidate"}, scoped=True)

    # Change stream plumbing

    def _register(self, stream: InMemoryChangeSubscription) -> int:
        if self.topology == "single":
            raise StoreError(
                CODE_CHANGE_STREAM_REPLICA_SET,
                "The $changeStream stage is only supported on replica sets",
                "Location40573",
            )
        for stage in stream.pipeline:
            for name in stage:
                if name not in SUPPORTED_STAGES:
                    raise StoreError(
                        CODE_UNRECOGNIZED_STAGE,
                        f"Unrecognized pipeline stage name: '{name}'",
                        "Location40324",
                    )
        self._streams.append(stream)
        return next(self._cursor_ids)

    def _unregister(self, stream: InMemoryChangeSubscription) -> None:
        if stream in self._streams:
            self._streams.remove(stream)

    def _publish(
        self,
        database: str,
        collection: str,
        fields: dict[str, Any],
        *,
        scoped: bool = False,
    ) -> None:
        if database in INTERNAL_DATABASES:
            return
        tick = next(self._clock)
        change = {
            "_id": {"_data": f"{tick:016X}"},
            "clusterTime": Timestamp(tick, 1),
            "ns": {"db": database, "coll": collection},
            **fields,
        }
        if fields["operationType"] == "invalidate":
            del change["ns"]
        for stream in list(self._streams):
            if stream.watches(database, collection, collection_only=scoped):
                stream._deliver(copy.deepcopy(change))
                if fields["operationType"] == "invalidate":
                    self._unregister(stream)
                    stream._exhaust()


class InMemoryChangeSubscription:
    """
    Change stream handle returned by InMemoryClient.open_change_stream.

    The server-side cursor is opened lazily on the first read, when the
    aggregate command is emitted. Change documents that do not satisfy the
    pipeline's ``$match`` stages are dropped.

    After an invalidate the server-side cursor is gone: reads past the
    invalidate raise StopAsyncIteration and close() sends no killCursors.

    Attributes:
        opened: Whether the aggregate has been sent
        close_count: Number of close() calls, for assertions in tests
    """

    def __init__(
        self,
        client: InMemoryClient,
        target: ChangeStreamTarget,
        database: str,
        collection: str,
        pipeline: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any],
    ) -> None:
        self._client = client
        self.target = target
        self.database = database
        self.collection = collection
        self.pipeline = [dict(stage) for stage in pipeline]
        self.options = dict(options)
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._cursor_id: int | None = None
        self._closed = False
        self._exhausted = False
        self.close_count = 0

    @property
    def opened(self) -> bool:
        return self._cursor_id is not None

    def watches(self, database: str, collection: str, *, collection_only: bool = False) -> bool:
        if self.target is ChangeStreamTarget.COLLECTION:
            return (database, collection) == (self.database, self.collection)
        if collection_only:
            return False
        if self.target is ChangeStreamTarget.DATABASE:
            return database == self.database
        return True

    def aggregate_command(self) -> tuple[str, dict[str, Any]]:
        """Database and command document of the aggregate opening this stream."""
        stage = dict(self.options)
        if self.target is ChangeStreamTarget.CLIENT:
            stage["allChangesForCluster"] = True
            database = "admin"
        else:
            database = self.database
        aggregate: Any = self.collection if self.target is ChangeStreamTarget.COLLECTION else 1
        command = {
            "aggregate": aggregate,
            "pipeline": [{"$changeStream": stage}, *copy.deepcopy(self.pipeline)],
            "cursor": {},
        }
        return database, command

    def _deliver(self, item: Any) -> None:
        if isinstance(item, BaseException) or self._passes_pipeline(item):
            self._queue.put_nowait(item)

    def _exhaust(self) -> None:
        self._exhausted = True
        self._queue.put_nowait(_CURSOR_EXHAUSTED)

    def _passes_pipeline(self, change: Mapping[str, Any]) -> bool:
        return all(_filter_matches(change, stage["$match"]) for stage in self.pipeline)

    async def read_next(self) -> dict[str, Any]:
        if self._closed:
            raise InvalidOperation("Cannot call next() on a closed change stream")
        if self._cursor_id is None:
            database, command = self.aggregate_command()
            self._cursor_id = await self._client._run(
                database, "aggregate", command, lambda server: server._register(self)
            )
        item = await self._queue.get()
        if item is _CURSOR_EXHAUSTED:
            self._queue.put_nowait(item)
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item  # type: ignore[no-any-return]

    async def close(self) -> None:
        self.close_count += 1
        if self._closed:
            return
        self._closed = True
        if self._cursor_id is None or self._exhausted:
            return
        self._client._server._unregister(self)
        namespace = (
            self.collection if self.target is ChangeStreamTarget.COLLECTION else "$cmd.aggregate"
        )
        database = "admin" if self.target is ChangeStreamTarget.CLIENT else self.database
        await self._client._run(
            database,
            "killCursors",
            {"killCursors": namespace, "cursors": [self._cursor_id]},
            lambda server: None,
        )


class InMemoryCollection:
    """Collection handle with the coroutine methods the operation registry uses."""

    def __init__(self, client: InMemoryClient, database: str, name: str) -> None:
        self._client = client
        self.database = database
        self.name = name

    async def insert_one(self, document: Mapping[str, Any]) -> InsertOneResult:
        stored = dict(document)
        stored.setdefault("_id", ObjectId())
        command = {"insert": self.name, "ordered": True, "documents": [stored]}
        inserted_id = await self._client._run(
            self.database,
            "insert",
            command,
            lambda server: server.insert(self.database, self.name, stored),
        )
        return InsertOneResult(inserted_id, True)

    async def delete_one(self, filter: Mapping[str, Any]) -> DeleteResult:
        return await self._delete(filter, limit=1)

    async def delete_many(self, filter: Mapping[str, Any]) -> DeleteResult:
        return await self._delete(filter, limit=0)

    async def _delete(self, filter: Mapping[str, Any], limit: int) -> DeleteResult:
        command = {
            "delete": self.name,
            "ordered": True,
            "deletes": [{"q": dict(filter), "limit": limit}],
        }
        deleted = await self._client._run(
            self.database,
            "delete",
            command,
            lambda server: server.delete(self.database, self.name, filter, limit),
        )
        return DeleteResult({"n": deleted, "ok": 1.0}, True)

    async def count_documents(self, filter: Mapping[str, Any]) -> int:
        command = {
            "aggregate": self.name,
            "pipeline": [{"$match": dict(filter)}, {"$group": {"_id": 1, "n": {"$sum": 1}}}],
            "cursor": {},
        }
        return await self._client._run(  # type: ignore[no-any-return]
            self.database,
            "aggregate",
            command,
            lambda server: server.count(self.database, self.name, filter),
        )

    async def drop(self) -> None:
        await self._client._run(
            self.database,
            "drop",
            {"drop": self.name},
            lambda server: server.drop_collection(self.database, self.name),
        )


class InMemoryClient:
    """
    One connection to an InMemoryServer.

    Every command is preceded by a command-started record passed to the
    registered listeners, shaped like a driver's monitoring event:
    ``command_name``, ``database_name``, ``command``, ``request_id`` and
    ``operation_id``.
    """

    def __init__(self, server: InMemoryServer) -> None:
        self._server = server
        self._listeners: list[CommandStartedCallback] = []
        self._request_ids = itertools.count(1)
        self._closed = False

    @property
    def server(self) -> InMemoryServer:
        return self._server

    def on_command_started(self, callback: CommandStartedCallback) -> None:
        self._listeners.append(callback)

    def collection(self, database: str, name: str) -> InMemoryCollection:
        return InMemoryCollection(self, database, name)

    def open_change_stream(
        self,
        target: ChangeStreamTarget,
        database: str,
        collection: str,
        pipeline: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any],
    ) -> InMemoryChangeSubscription:
        return InMemoryChangeSubscription(self, target, database, collection, pipeline, options)

    async def drop_database(self, name: str) -> None:
        await self._run(
            name,
            "dropDatabase",
            {"dropDatabase": 1},
            lambda server: server.drop_database(name),
        )

    async def create_collection(self, database: str, name: str) -> None:
        await self._run(
            database,
            "create",
            {"create": name},
            lambda server: server.create_collection(database, name),
        )

    async def server_info(self) -> ServerInfo:
        return self._server.server_info()

    async def close(self) -> None:
        self._closed = True
        self._listeners.clear()

    async def _run(
        self,
        database: str,
        command_name: str,
        command: dict[str, Any],
        apply: Callable[[InMemoryServer], Any],
    ) -> Any:
        """Emit the command-started record, yield to the loop, then apply the command."""
        if self._closed:
            raise InvalidOperation("Cannot use InMemoryClient after close")
        request_id = next(self._request_ids)
        event = {
            "command_name": command_name,
            "database_name": database,
            "command": copy.deepcopy(command),
            "request_id": request_id,
            "operation_id": request_id,
        }
        for listener in list(self._listeners):
            listener(event)
        await asyncio.sleep(0)
        return apply(self._server)


__all__ = [
    "InMemoryChangeSubscription",
    "InMemoryClient",
    "InMemoryCollection",
    "InMemoryServer",
]
