"""
Shared pytest fixtures for the changestream_spec tests.

This module provides:
- Document fixtures (spec_document, make_test)
- In-memory store fixtures (server, client, suite, runner)
- Tracing fixtures (mock_tracer)
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from changestream_spec.clients import InMemoryClient, InMemoryServer
from changestream_spec.config import RunnerConfig
from changestream_spec.loader import load_spec_document
from changestream_spec.models import SpecDocument, TestSpecification
from changestream_spec.observability import MockTracer
from changestream_spec.scenarios import SpecRunner, SuiteContext

DATA_DIR = Path(__file__).parent / "data"

DATABASE = "change-stream-tests"
COLLECTION = "test"

FAST_CONFIG = RunnerConfig(settle_delay=0.01, enable_tracing=False)


# ============================================================================
# Document Fixtures
# ============================================================================


@pytest.fixture
def spec_document() -> SpecDocument:
    """The change stream scenarios shipped with the tests."""
    return load_spec_document(DATA_DIR / "change-streams.json")


def build_test(**overrides: Any) -> TestSpecification:
    """Build a collection-target scenario with no operations, overriding any field."""
    data: dict[str, Any] = {
        "description": "scenario",
        "target": "collection",
        "changeStreamPipeline": [],
        "changeStreamOptions": {},
        "operations": [],
        "expectations": [],
        "result": {"success": []},
    }
    data.update(overrides)
    return TestSpecification.model_validate(data)


def insert_operation(document: dict[str, Any], collection: str = COLLECTION) -> dict[str, Any]:
    """Fixture-shaped insertOne operation."""
    return {
        "database": DATABASE,
        "collection": collection,
        "name": "insertOne",
        "arguments": {"document": document},
    }


@pytest.fixture
def make_test() -> Callable[..., TestSpecification]:
    """Factory for ad-hoc scenarios."""
    return build_test


def build_document(*tests: TestSpecification) -> SpecDocument:
    """Suite document holding the given scenarios."""
    return SpecDocument(
        database_name=DATABASE,
        database_name_2=f"{DATABASE}-2",
        collection_name=COLLECTION,
        tests=list(tests),
    )


# ============================================================================
# In-Memory Store Fixtures
# ============================================================================


@pytest.fixture
def server() -> InMemoryServer:
    """Replica-set in-memory server."""
    return InMemoryServer()


@pytest.fixture
def client(server: InMemoryServer) -> InMemoryClient:
    """Client connected to the in-memory server."""
    return InMemoryClient(server)


@pytest_asyncio.fixture
async def suite(
    spec_document: SpecDocument, server: InMemoryServer
) -> AsyncGenerator[SuiteContext, None]:
    """In-memory suite over the shipped scenarios."""
    context = SuiteContext.in_memory(spec_document, server, FAST_CONFIG)
    yield context
    await context.close()


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Tracer recording span names and attributes."""
    return MockTracer()


@pytest.fixture
def runner(suite: SuiteContext, mock_tracer: MockTracer) -> SpecRunner:
    """Runner over the in-memory suite."""
    return SpecRunner(suite, tracer=mock_tracer)


@pytest.fixture
def make_document() -> Callable[..., SpecDocument]:
    """Factory for suite documents over ad-hoc scenarios."""
    return build_document


@pytest.fixture
def insert_op() -> Callable[..., dict[str, Any]]:
    """Factory for fixture-shaped insertOne operations."""
    return insert_operation
