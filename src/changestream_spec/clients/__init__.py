"""
Data store clients consumed by the scenario runner.

- interface: Protocols and value types the runner depends on
- in_memory: In-process store with change streams, for tests and local runs
- mongo: Adapter over pymongo's AsyncMongoClient
"""

from changestream_spec.clients.in_memory import (
    InMemoryChangeSubscription,
    InMemoryClient,
    InMemoryCollection,
    InMemoryServer,
)
from changestream_spec.clients.interface import (
    ChangeStreamTarget,
    ChangeSubscription,
    ClientFactory,
    CollectionHandle,
    CommandStartedCallback,
    DataStoreClient,
    ServerInfo,
)
from changestream_spec.clients.mongo import (
    CommandStartedForwarder,
    MongoChangeSubscription,
    MongoDataStore,
    change_stream_kwargs,
)

__all__ = [
    "ChangeStreamTarget",
    "ChangeSubscription",
    "ClientFactory",
    "CollectionHandle",
    "CommandStartedCallback",
    "CommandStartedForwarder",
    "DataStoreClient",
    "InMemoryChangeSubscription",
    "InMemoryClient",
    "InMemoryCollection",
    "InMemoryServer",
    "MongoChangeSubscription",
    "MongoDataStore",
    "ServerInfo",
    "change_stream_kwargs",
]
