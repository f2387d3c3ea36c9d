"""
Suite-wide and per-scenario state.

This module provides:
- SuiteContext: The shared administrative client, the suite's database and
  collection names, configuration, and a factory for per-scenario clients
- RunContext: The state owned by one scenario run (dedicated client, event
  log, open subscription), torn down when the scenario ends

The administrative client is only used between scenarios (setup and
teardown), never while a scenario's own operations are running.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from changestream_spec.clients.in_memory import InMemoryClient, InMemoryServer
from changestream_spec.clients.interface import (
    ChangeSubscription,
    ClientFactory,
    CollectionHandle,
    DataStoreClient,
    ServerInfo,
)
from changestream_spec.clients.mongo import MongoDataStore
from changestream_spec.config import RunnerConfig
from changestream_spec.exceptions import ConfigError
from changestream_spec.models import SpecDocument
from changestream_spec.monitoring import EventLog

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """
    Mutable state of one scenario run.

    Attributes:
        client: Dedicated, freshly connected client for this scenario
        database_name: Suite database the database/collection targets use
        collection_name: Suite collection the collection target uses
        event_log: Command-started records emitted by client
        subscription: Change subscription once opened
        subscription_drained: Whether the drainer has taken ownership of
            closing the subscription
    """

    client: DataStoreClient
    database_name: str
    collection_name: str
    event_log: EventLog
    subscription: ChangeSubscription | None = None
    subscription_drained: bool = False

    @property
    def collection(self) -> CollectionHandle:
        """Handle on the suite collection through the dedicated client."""
        return self.client.collection(self.database_name, self.collection_name)

    async def teardown(self) -> None:
        """
        Close the subscription (unless the drainer already did) and the client.

        Failures are logged and do not prevent the client from being closed.
        """
        if self.subscription is not None and not self.subscription_drained:
            try:
                await self.subscription.close()
            except Exception as e:
                logger.error(f"Failed to close subscription during teardown: {e}", exc_info=e)
        self.event_log.close()
        try:
            await self.client.close()
        except Exception as e:
            logger.error(f"Failed to close scenario client during teardown: {e}", exc_info=e)


@dataclass
class SuiteContext:
    """
    State shared by every scenario of one specification document.

    Attributes:
        document: The loaded specification document
        admin_client: Client used for fixture setup between scenarios
        client_factory: Creates a fresh monitored client for each scenario
        config: Runner configuration

    Example:
        >>> suite = SuiteContext.in_memory(document)
        >>> run_context = await suite.open_run_context()
        >>> ...
        >>> await run_context.teardown()
        >>> await suite.close()
    """

    document: SpecDocument
    admin_client: DataStoreClient
    client_factory: ClientFactory
    config: RunnerConfig = field(default_factory=RunnerConfig)
    _server_info: ServerInfo | None = field(default=None, init=False, repr=False)

    @classmethod
    def in_memory(
        cls,
        document: SpecDocument,
        server: InMemoryServer | None = None,
        config: RunnerConfig | None = None,
    ) -> SuiteContext:
        """Build a suite backed by an in-process store."""
        server = server or InMemoryServer()

        async def factory() -> DataStoreClient:
            return InMemoryClient(server)

        return cls(
            document=document,
            admin_client=InMemoryClient(server),
            client_factory=factory,
            config=config or RunnerConfig(),
        )

    @classmethod
    async def connect(cls, document: SpecDocument, config: RunnerConfig) -> SuiteContext:
        """
        Build a suite against the MongoDB deployment at config.uri.

        Raises:
            ConfigError: If config.uri is not set
        """
        if config.uri is None:
            raise ConfigError("RunnerConfig.uri is required to connect to a MongoDB deployment")
        uri = config.uri
        admin_client = await MongoDataStore.connect(uri, monitor_commands=False)

        async def factory() -> DataStoreClient:
            return await MongoDataStore.connect(uri, monitor_commands=True)

        return cls(
            document=document,
            admin_client=admin_client,
            client_factory=factory,
            config=config,
        )

    async def server_info(self) -> ServerInfo:
        """Server version and topology, queried once per suite."""
        if self._server_info is None:
            self._server_info = await self.admin_client.server_info()
        return self._server_info

    async def prepare_scenario(self) -> None:
        """Drop every suite database and recreate the suite collection."""
        for database in self.document.all_databases:
            await self.admin_client.drop_database(database)
        await self.admin_client.create_collection(
            self.document.database_name, self.document.collection_name
        )
        logger.debug(
            f"Prepared {self.document.database_name}.{self.document.collection_name}",
            extra={"databases": self.document.all_databases},
        )

    async def open_run_context(self) -> RunContext:
        """Prepare fixtures and connect a fresh monitored client for one scenario."""
        await self.prepare_scenario()
        client = await self.client_factory()
        try:
            event_log = EventLog().attach(client)
        except BaseException:
            await client.close()
            raise
        return RunContext(
            client=client,
            database_name=self.document.database_name,
            collection_name=self.document.collection_name,
            event_log=event_log,
        )

    async def close(self) -> None:
        """Close the administrative client."""
        await self.admin_client.close()


__all__ = ["RunContext", "SuiteContext"]
