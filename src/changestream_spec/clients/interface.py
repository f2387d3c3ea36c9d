"""
Interfaces the scenario runner consumes from a data store client.

The runner never talks to a driver directly. A client adapter provides:

- change subscriptions on a client, database or collection target
- collection handles exposing coroutine methods (insert_one, ...)
- a command-started monitoring channel
- the administrative calls used between scenarios

This module provides:
- ChangeStreamTarget: Which handle a subscription is opened on
- ServerInfo: Version and topology of the store under test
- ChangeSubscription / CollectionHandle / DataStoreClient: Protocols
- CommandStartedCallback: Signature of monitoring listeners
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

CommandStartedCallback = Callable[[Mapping[str, Any]], None]


class ChangeStreamTarget(Enum):
    """
    Handle a change subscription is opened on.

    Attributes:
        CLIENT: Every database on the deployment
        DATABASE: Every collection of the suite database
        COLLECTION: The suite collection only
    """

    CLIENT = "client"
    DATABASE = "database"
    COLLECTION = "collection"


@dataclass(frozen=True)
class ServerInfo:
    """
    Facts about the store under test used for requirement checks.

    Attributes:
        version: Server version as a tuple of integers (e.g. (4, 0, 0))
        topology: One of 'single', 'replicaset', 'sharded'
    """

    version: tuple[int, ...]
    topology: str


@runtime_checkable
class ChangeSubscription(Protocol):
    """A live, sequential feed of change documents."""

    async def read_next(self) -> Mapping[str, Any]:
        """Wait for and return the next change document."""
        ...

    async def close(self) -> None:
        """Release the subscription."""
        ...


@runtime_checkable
class CollectionHandle(Protocol):
    """
    Collection handle the operation registry invokes.

    Only the methods used by registered operations are required; the
    pymongo asynchronous collection satisfies this protocol as-is.
    """

    async def insert_one(self, document: Mapping[str, Any]) -> Any: ...

    async def delete_one(self, filter: Mapping[str, Any]) -> Any: ...

    async def delete_many(self, filter: Mapping[str, Any]) -> Any: ...

    async def count_documents(self, filter: Mapping[str, Any]) -> int: ...

    async def drop(self) -> None: ...


@runtime_checkable
class DataStoreClient(Protocol):
    """
    Client adapter consumed by the scenario runner.

    open_change_stream is synchronous and must not perform I/O; the
    returned subscription opens its server-side cursor on first read.
    """

    def open_change_stream(
        self,
        target: ChangeStreamTarget,
        database: str,
        collection: str,
        pipeline: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any],
    ) -> ChangeSubscription:
        """Open a change subscription on the given target."""
        ...

    def collection(self, database: str, name: str) -> CollectionHandle:
        """Return a handle on database.name."""
        ...

    def on_command_started(self, callback: CommandStartedCallback) -> None:
        """Register a listener called synchronously for each outbound command."""
        ...

    async def drop_database(self, name: str) -> None:
        """Drop a database if it exists."""
        ...

    async def create_collection(self, database: str, name: str) -> None:
        """Create an empty collection."""
        ...

    async def server_info(self) -> ServerInfo:
        """Describe the server this client is connected to."""
        ...

    async def close(self) -> None:
        """Close the client and release its connections."""
        ...


ClientFactory = Callable[[], Awaitable[DataStoreClient]]
"""Coroutine factory producing a fresh, connected, monitored client."""


__all__ = [
    "ChangeStreamTarget",
    "ChangeSubscription",
    "ClientFactory",
    "CollectionHandle",
    "CommandStartedCallback",
    "DataStoreClient",
    "ServerInfo",
]
