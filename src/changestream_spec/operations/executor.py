"""
Turns operation descriptors into deferred actions against the store.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from bson import json_util

from changestream_spec.clients.interface import DataStoreClient
from changestream_spec.models import OperationDescriptor
from changestream_spec.operations.registry import OperationRegistry, default_registry

logger = logging.getLogger(__name__)

OperationAction = Callable[[], Awaitable[Any]]


def decode_document(document: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """
    Decode extended-JSON values (``{"$oid": ...}``, ``{"$date": ...}``) in a
    fixture document into BSON types before it is sent to the store.
    """
    if document is None:
        return None
    return json_util.loads(json.dumps(document))  # type: ignore[no-any-return]


def make_operation(
    client: DataStoreClient,
    descriptor: OperationDescriptor,
    registry: OperationRegistry = default_registry,
) -> OperationAction:
    """
    Build a zero-argument action that runs one scripted operation.

    Nothing is sent to the store until the returned action is awaited.
    Errors raised by the store propagate unchanged.

    Args:
        client: Client whose collection handle the operation runs on
        descriptor: Operation to run
        registry: Registry resolving the operation name

    Returns:
        Coroutine function performing the operation when called

    Raises:
        ConfigError: If the operation name is not registered
    """
    info = registry.validate(descriptor.name, descriptor.document)
    document = decode_document(descriptor.document)

    async def action() -> Any:
        collection = client.collection(descriptor.database, descriptor.collection)
        logger.debug(
            f"Running {descriptor.name} on {descriptor.database}.{descriptor.collection}",
            extra={
                "operation": descriptor.name,
                "database": descriptor.database,
                "collection": descriptor.collection,
            },
        )
        return await info.handler(collection, document)

    return action


__all__ = ["OperationAction", "decode_document", "make_operation"]
