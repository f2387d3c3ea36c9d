"""
MongoDB client adapter built on pymongo's asyncio API.

Wraps an AsyncMongoClient so it satisfies DataStoreClient. Command-started
events are captured with a pymongo CommandListener registered when the
client is created, and forwarded as plain records to the callbacks added
with on_command_started().

Errors raised by pymongo are never translated; they reach the scenario
outcome unchanged.

Example:
    >>> store = await MongoDataStore.connect("mongodb://localhost:27017/?replicaSet=rs0")
    >>> log = EventLog().attach(store)
    >>> stream = store.open_change_stream(ChangeStreamTarget.COLLECTION, "db", "coll", [], {})
    >>> change = await stream.read_next()
    >>> await stream.close()
    >>> await store.close()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pymongo import AsyncMongoClient, monitoring
from pymongo.asynchronous.change_stream import AsyncChangeStream
from pymongo.asynchronous.collection import AsyncCollection

from changestream_spec.clients.interface import (
    ChangeStreamTarget,
    CommandStartedCallback,
    ServerInfo,
)
from changestream_spec.normalization import snake_case

logger = logging.getLogger(__name__)


class CommandStartedForwarder(monitoring.CommandListener):
    """CommandListener forwarding started events as records to callbacks."""

    def __init__(self) -> None:
        self._callbacks: list[CommandStartedCallback] = []

    def add(self, callback: CommandStartedCallback) -> None:
        self._callbacks.append(callback)

    def clear(self) -> None:
        self._callbacks.clear()

    def started(self, event: monitoring.CommandStartedEvent) -> None:
        if not self._callbacks:
            return
        record = {
            "command_name": event.command_name,
            "database_name": event.database_name,
            "command": event.command,
            "request_id": event.request_id,
            "operation_id": event.operation_id,
            "connection_id": event.connection_id,
        }
        for callback in list(self._callbacks):
            callback(record)

    def succeeded(self, event: monitoring.CommandSucceededEvent) -> None:
        pass

    def failed(self, event: monitoring.CommandFailedEvent) -> None:
        pass


def change_stream_kwargs(options: Mapping[str, Any]) -> dict[str, Any]:
    """
    Map camel-case $changeStream options onto watch() keyword arguments.

    Example:
        >>> change_stream_kwargs({"fullDocument": "updateLookup", "batchSize": 1})
        {'full_document': 'updateLookup', 'batch_size': 1}
    """
    return {snake_case(key): value for key, value in options.items()}


class MongoChangeSubscription:
    """
    Lazily opened change stream.

    watch() is only awaited on the first read, so opening the subscription
    performs no I/O and a server rejection of the aggregate surfaces from
    read_next().
    """

    def __init__(
        self,
        watchable: Any,
        pipeline: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any],
    ) -> None:
        self._watchable = watchable
        self._pipeline = [dict(stage) for stage in pipeline]
        self._kwargs = change_stream_kwargs(options)
        self._stream: AsyncChangeStream[Any] | None = None

    async def read_next(self) -> Mapping[str, Any]:
        if self._stream is None:
            self._stream = await self._watchable.watch(self._pipeline, **self._kwargs)
        return await self._stream.next()  # type: ignore[no-any-return]

    async def close(self) -> None:
        if self._stream is not None:
            await self._stream.close()


class MongoDataStore:
    """
    DataStoreClient implementation over AsyncMongoClient.

    Use connect() to build one; the constructor takes an already created
    client and the forwarder registered on it.
    """

    def __init__(
        self,
        client: AsyncMongoClient[Any],
        forwarder: CommandStartedForwarder | None = None,
    ) -> None:
        self._client = client
        self._forwarder = forwarder

    @classmethod
    async def connect(cls, uri: str, *, monitor_commands: bool = True) -> MongoDataStore:
        """
        Create a client for uri and check the deployment is reachable.

        Args:
            uri: MongoDB connection string
            monitor_commands: Register a command listener so that
                on_command_started() can be used

        Returns:
            Connected MongoDataStore

        Raises:
            pymongo.errors.PyMongoError: If the deployment cannot be reached;
                the client is closed before the error propagates
        """
        forwarder = CommandStartedForwarder() if monitor_commands else None
        listeners = [forwarder] if forwarder is not None else []
        client: AsyncMongoClient[Any] = AsyncMongoClient(uri, event_listeners=listeners)
        try:
            await client.admin.command("ping")
        except BaseException:
            await client.close()
            raise
        logger.debug(
            "Connected MongoDB client",
            extra={"monitor_commands": monitor_commands},
        )
        return cls(client, forwarder)

    @property
    def client(self) -> AsyncMongoClient[Any]:
        return self._client

    def on_command_started(self, callback: CommandStartedCallback) -> None:
        if self._forwarder is None:
            raise RuntimeError("Client was created without command monitoring")
        self._forwarder.add(callback)

    def collection(self, database: str, name: str) -> AsyncCollection[Any]:
        return self._client[database][name]

    def open_change_stream(
        self,
        target: ChangeStreamTarget,
        database: str,
        collection: str,
        pipeline: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any],
    ) -> MongoChangeSubscription:
        watchable: Any
        if target is ChangeStreamTarget.CLIENT:
            watchable = self._client
        elif target is ChangeStreamTarget.DATABASE:
            watchable = self._client[database]
        else:
            watchable = self._client[database][collection]
        return MongoChangeSubscription(watchable, pipeline, options)

    async def drop_database(self, name: str) -> None:
        await self._client.drop_database(name)

    async def create_collection(self, database: str, name: str) -> None:
        await self._client[database].create_collection(name)

    async def server_info(self) -> ServerInfo:
        build_info = await self._client.admin.command("buildInfo")
        hello = await self._client.admin.command("hello")
        if hello.get("msg") == "isdbgrid":
            topology = "sharded"
        elif "setName" in hello:
            topology = "replicaset"
        else:
            topology = "single"
        version = tuple(int(part) for part in build_info["versionArray"][:3])
        return ServerInfo(version=version, topology=topology)

    async def close(self) -> None:
        if self._forwarder is not None:
            self._forwarder.clear()
        await self._client.close()


__all__ = [
    "CommandStartedForwarder",
    "MongoChangeSubscription",
    "MongoDataStore",
    "change_stream_kwargs",
]
