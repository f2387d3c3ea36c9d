"""
Shared pytest fixtures for integration tests against a MongoDB deployment.

The deployment is taken from CHANGESTREAM_SPEC_URI when set (use a replica
set to exercise every scenario). Otherwise a MongoDB container is started
with testcontainers; it runs as a standalone server, so scenarios that need
a replica set are skipped by their topology requirement.

If neither is available, tests are automatically skipped.
"""

from __future__ import annotations

import subprocess
from collections.abc import Generator

import pytest

from changestream_spec.config import RunnerConfig

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (may require docker)"
    )
    config.addinivalue_line("markers", "mongodb: marks tests that require MongoDB")


# ============================================================================
# Testcontainers Detection
# ============================================================================

TESTCONTAINERS_AVAILABLE = False

try:
    from testcontainers.mongodb import MongoDbContainer

    TESTCONTAINERS_AVAILABLE = True
except ImportError:
    MongoDbContainer = None  # type: ignore[assignment, misc]


def is_docker_available() -> bool:
    """Check if Docker is available for running containers."""
    try:
        result = subprocess.run(
            ["docker", "info"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False


ENV_CONFIG = RunnerConfig.from_env()


# ============================================================================
# MongoDB Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_uri() -> Generator[str, None, None]:
    """
    Connection string of the deployment under test.

    Uses CHANGESTREAM_SPEC_URI when set, otherwise a session-wide container.
    """
    if ENV_CONFIG.uri is not None:
        yield ENV_CONFIG.uri
        return

    if not TESTCONTAINERS_AVAILABLE or not is_docker_available():
        pytest.skip("MongoDB test infrastructure not available")

    container = MongoDbContainer("mongo:7.0")
    container.start()

    yield container.get_connection_url()

    container.stop()


@pytest.fixture(scope="session")
def runner_config(mongodb_uri: str) -> RunnerConfig:
    """Runner configuration pointing at the deployment under test."""
    return RunnerConfig(
        uri=mongodb_uri,
        settle_delay=ENV_CONFIG.settle_delay,
        enable_tracing=False,
    )
