"""
changestream_spec - Declarative conformance runner for MongoDB change streams.

This library provides:
- Specification document models and a JSON loader
- A partial-structure value matcher with wildcard support
- An operation registry mapping fixture names to collection calls
- A scenario orchestrator interleaving a change subscription with writes
- Outcome and command-started event verification
- pymongo and in-memory data store clients
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("changestream-spec")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from changestream_spec.clients import (
    ChangeStreamTarget,
    ChangeSubscription,
    DataStoreClient,
    InMemoryClient,
    InMemoryServer,
    MongoDataStore,
    ServerInfo,
)
from changestream_spec.config import RunnerConfig
from changestream_spec.exceptions import (
    ChangeStreamSpecError,
    ConfigError,
    MismatchError,
    MissingEventError,
    StoreError,
    TypeMismatchError,
    UnexpectedFailureError,
    UnexpectedSuccessError,
)
from changestream_spec.loader import load_spec_directory, load_spec_document, parse_spec_document
from changestream_spec.matching import assert_matches, matches
from changestream_spec.models import (
    ExpectedEvent,
    ExpectedOutcome,
    OperationDescriptor,
    SpecDocument,
    TestSpecification,
)
from changestream_spec.monitoring import EventLog
from changestream_spec.normalization import normalize_event, to_json_shape
from changestream_spec.operations import OperationRegistry, default_registry, make_operation
from changestream_spec.scenarios import (
    RunContext,
    ScenarioOrchestrator,
    ScenarioOutcome,
    ScenarioResult,
    ScenarioStatus,
    SpecRunner,
    SuiteContext,
    verify,
)
from changestream_spec.subscriptions import drain

__all__ = [
    "__version__",
    # Clients
    "ChangeStreamTarget",
    "ChangeSubscription",
    "DataStoreClient",
    "InMemoryClient",
    "InMemoryServer",
    "MongoDataStore",
    "ServerInfo",
    # Configuration
    "RunnerConfig",
    # Exceptions
    "ChangeStreamSpecError",
    "ConfigError",
    "MismatchError",
    "MissingEventError",
    "StoreError",
    "TypeMismatchError",
    "UnexpectedFailureError",
    "UnexpectedSuccessError",
    # Documents
    "ExpectedEvent",
    "ExpectedOutcome",
    "OperationDescriptor",
    "SpecDocument",
    "TestSpecification",
    "load_spec_directory",
    "load_spec_document",
    "parse_spec_document",
    # Matching and normalization
    "assert_matches",
    "matches",
    "normalize_event",
    "to_json_shape",
    # Execution
    "EventLog",
    "OperationRegistry",
    "default_registry",
    "make_operation",
    "drain",
    "RunContext",
    "SuiteContext",
    "ScenarioOrchestrator",
    "ScenarioOutcome",
    "ScenarioResult",
    "ScenarioStatus",
    "SpecRunner",
    "verify",
]
