"""
Registry mapping fixture operation names to typed invocations.

Scenario fixtures name operations with strings such as ``insertOne``.
Instead of looking a method up by name on the collection at run time, each
supported name is registered here with a handler that knows which
collection method to call and how to pass the document argument. Unknown
names are rejected when a specification is loaded.

Example:
    >>> from changestream_spec.operations.registry import default_registry
    >>>
    >>> info = default_registry.resolve("insertOne")
    >>> await info.handler(collection, {"x": 1})
    >>>
    >>> @default_registry.operation("findOneAndDelete", requires_document=True)
    ... async def _find_one_and_delete(collection, document):
    ...     return await collection.find_one_and_delete(document)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from changestream_spec.clients.interface import CollectionHandle
from changestream_spec.exceptions import ConfigError

logger = logging.getLogger(__name__)

OperationHandler = Callable[[CollectionHandle, Mapping[str, Any] | None], Awaitable[Any]]


@dataclass(frozen=True)
class OperationInfo:
    """
    Metadata about a registered operation.

    Attributes:
        name: Fixture operation name
        handler: Coroutine function invoked with (collection, document)
        requires_document: Whether the fixture must supply arguments.document
    """

    name: str
    handler: OperationHandler
    requires_document: bool = False


class OperationRegistry:
    """
    Registry of operations a scenario may script.

    Example:
        >>> registry = OperationRegistry()
        >>> registry.register("drop", _drop)
        >>> "drop" in registry
        True
        >>> registry.resolve("dropIndexes")
        Traceback (most recent call last):
        ...
        ConfigError: Unknown operation 'dropIndexes'. Known operations: drop
    """

    def __init__(self) -> None:
        self._operations: dict[str, OperationInfo] = {}

    def register(
        self,
        name: str,
        handler: OperationHandler,
        *,
        requires_document: bool = False,
    ) -> None:
        """
        Register a handler for an operation name.

        Raises:
            ConfigError: If the name is already registered
        """
        if name in self._operations:
            raise ConfigError(f"Operation '{name}' is already registered")
        self._operations[name] = OperationInfo(
            name=name,
            handler=handler,
            requires_document=requires_document,
        )
        logger.debug(
            f"Registered operation {name}",
            extra={"operation": name, "requires_document": requires_document},
        )

    def operation(
        self,
        name: str,
        *,
        requires_document: bool = False,
    ) -> Callable[[OperationHandler], OperationHandler]:
        """Decorator form of register()."""

        def decorator(handler: OperationHandler) -> OperationHandler:
            self.register(name, handler, requires_document=requires_document)
            return handler

        return decorator

    def resolve(self, name: str) -> OperationInfo:
        """
        Look up an operation by fixture name.

        Raises:
            ConfigError: If no operation is registered under name
        """
        try:
            return self._operations[name]
        except KeyError:
            known = ", ".join(sorted(self._operations)) or "none"
            raise ConfigError(f"Unknown operation '{name}'. Known operations: {known}") from None

    def validate(self, name: str, document: Mapping[str, Any] | None) -> OperationInfo:
        """
        Resolve an operation and check its document argument is present when required.

        Raises:
            ConfigError: If the name is unknown or a required document is missing
        """
        info = self.resolve(name)
        if info.requires_document and document is None:
            raise ConfigError(f"Operation '{name}' requires arguments.document")
        return info

    def names(self) -> list[str]:
        """Registered operation names, sorted."""
        return sorted(self._operations)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)


default_registry = OperationRegistry()


@default_registry.operation("insertOne", requires_document=True)
async def _insert_one(collection: CollectionHandle, document: Mapping[str, Any] | None) -> Any:
    return await collection.insert_one(document or {})


@default_registry.operation("deleteOne", requires_document=True)
async def _delete_one(collection: CollectionHandle, document: Mapping[str, Any] | None) -> Any:
    return await collection.delete_one(document or {})


@default_registry.operation("deleteMany")
async def _delete_many(collection: CollectionHandle, document: Mapping[str, Any] | None) -> Any:
    return await collection.delete_many(document or {})


@default_registry.operation("countDocuments")
async def _count_documents(
    collection: CollectionHandle, document: Mapping[str, Any] | None
) -> int:
    return await collection.count_documents(document or {})


@default_registry.operation("drop")
async def _drop(collection: CollectionHandle, document: Mapping[str, Any] | None) -> None:
    await collection.drop()


__all__ = [
    "OperationHandler",
    "OperationInfo",
    "OperationRegistry",
    "default_registry",
]
