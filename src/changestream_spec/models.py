"""
Models for change stream specification documents.

A specification document holds the suite-level database and collection
names and an ordered list of scenarios. Each scenario declares the change
stream to open, the operations to run against the store, the expected
outcome and the expected command-started events.

All models are immutable once loaded.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from changestream_spec.clients.interface import ChangeStreamTarget


def parse_version(version: str) -> tuple[int, ...]:
    """
    Parse a dotted server version into a tuple of integers.

    Missing components are not padded; non-numeric suffixes such as
    ``-rc0`` are ignored.

    Example:
        >>> parse_version("3.6.0")
        (3, 6, 0)
        >>> parse_version("4.2.0-rc1")
        (4, 2, 0)
    """
    parts: list[int] = []
    for part in version.split("."):
        digits = ""
        for char in part:
            if not char.isdigit():
                break
            digits += char
        if not digits:
            break
        parts.append(int(digits))
    if not parts:
        raise ValueError(f"Invalid server version: {version!r}")
    return tuple(parts)


class OperationArguments(BaseModel):
    """Arguments of a scripted operation. Only ``document`` is consumed."""

    model_config = ConfigDict(frozen=True, extra="allow")

    document: dict[str, Any] | None = None


class OperationDescriptor(BaseModel):
    """
    One scripted operation against the store.

    Attributes:
        database: Database holding the target collection
        collection: Target collection name
        name: Fixture operation name (e.g. 'insertOne')
        arguments: Optional arguments; ``arguments.document`` is passed
            to the operation when present
    """

    model_config = ConfigDict(frozen=True)

    database: str
    collection: str
    name: str
    arguments: OperationArguments | None = None

    @property
    def document(self) -> dict[str, Any] | None:
        """The single document argument, if any."""
        if self.arguments is None:
            return None
        return self.arguments.document


class ExpectedOutcome(BaseModel):
    """
    Declared outcome of a scenario: a success list or an error shape.

    A result that declares neither is a success with no change documents.
    """

    model_config = ConfigDict(frozen=True)

    success: list[Any] | None = None
    error: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _check_single_variant(self) -> ExpectedOutcome:
        if self.success is not None and self.error is not None:
            raise ValueError("result must declare either 'success' or 'error', not both")
        return self

    @property
    def is_failure(self) -> bool:
        """True when the scenario is expected to be rejected."""
        return self.error is not None

    @property
    def success_shapes(self) -> list[Any]:
        """Expected change documents (empty for failure outcomes)."""
        return list(self.success or [])

    @property
    def expected_read_count(self) -> int:
        """
        Number of change documents the drainer must read.

        Failure outcomes need one read for the store error to surface.
        """
        if self.is_failure:
            return 1
        return len(self.success_shapes)


class ExpectedEvent(BaseModel):
    """Expected command-started event, keyed in the fixture naming convention."""

    model_config = ConfigDict(frozen=True)

    command_started_event: dict[str, Any]


class TestSpecification(BaseModel):
    """
    One declarative scenario.

    Attributes:
        description: Human-readable scenario name
        skip: Never run this scenario
        only: Restrict a run to scenarios flagged with only
        min_server_version: Lowest server version the scenario applies to
        max_server_version: Highest server version the scenario applies to
        topology: Topologies the scenario applies to (None = any)
        target: Handle the change stream is opened on
        change_stream_pipeline: Pipeline stages appended after $changeStream
        change_stream_options: Options of the $changeStream stage
        operations: Operations executed sequentially against the store
        result: Expected outcome
        expectations: Expected command-started events, in order
    """

    __test__: ClassVar[bool] = False

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str
    skip: bool = False
    only: bool = False
    min_server_version: str | None = Field(default=None, alias="minServerVersion")
    max_server_version: str | None = Field(default=None, alias="maxServerVersion")
    topology: list[str] | None = None
    target: ChangeStreamTarget
    change_stream_pipeline: list[dict[str, Any]] = Field(
        default_factory=list, alias="changeStreamPipeline"
    )
    change_stream_options: dict[str, Any] = Field(
        default_factory=dict, alias="changeStreamOptions"
    )
    operations: list[OperationDescriptor] = Field(default_factory=list)
    result: ExpectedOutcome = Field(default_factory=ExpectedOutcome)
    expectations: list[ExpectedEvent] = Field(default_factory=list)

    @field_validator("min_server_version", "max_server_version")
    @classmethod
    def _check_version(cls, value: str | None) -> str | None:
        if value is not None:
            parse_version(value)
        return value

    @property
    def expected_events(self) -> list[dict[str, Any]]:
        """Unwrapped command-started event shapes, in order."""
        return [expectation.command_started_event for expectation in self.expectations]


class SpecDocument(BaseModel):
    """
    A specification file: suite-level names plus its scenarios.

    Attributes:
        database_name: Suite database; its collection is the default target
        database_name_2: Secondary database for cross-database scenarios
        collection_name: Suite collection
        tests: Scenarios in file order
    """

    model_config = ConfigDict(frozen=True)

    database_name: str
    database_name_2: str | None = None
    collection_name: str
    tests: list[TestSpecification] = Field(default_factory=list)

    @property
    def all_databases(self) -> list[str]:
        """Databases dropped before every scenario."""
        names = [self.database_name]
        if self.database_name_2:
            names.append(self.database_name_2)
        return names


__all__ = [
    "ExpectedEvent",
    "ExpectedOutcome",
    "OperationArguments",
    "OperationDescriptor",
    "SpecDocument",
    "TestSpecification",
    "parse_version",
]
