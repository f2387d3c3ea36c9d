"""
Standard span attributes for changestream_spec.

Attribute constants used across components for consistent span naming.
These follow OpenTelemetry semantic conventions where applicable.

Example:
    >>> from changestream_spec.observability.attributes import ATTR_SCENARIO
    >>>
    >>> with tracer.span(
    ...     "changestream_spec.scenario.run",
    ...     {ATTR_SCENARIO: test.description},
    ... ):
    ...     pass
"""

# =============================================================================
# Scenario Attributes
# =============================================================================

ATTR_SCENARIO = "changestream_spec.scenario.description"
"""Human-readable description of the scenario being run."""

ATTR_TARGET = "changestream_spec.scenario.target"
"""Change stream target kind ('client', 'database' or 'collection')."""

ATTR_OUTCOME = "changestream_spec.scenario.outcome"
"""Outcome of a scenario run ('success' or 'failure')."""

# =============================================================================
# Subscription Attributes
# =============================================================================

ATTR_EXPECTED_COUNT = "changestream_spec.subscription.expected_count"
"""Number of change documents the drainer will read (integer)."""

ATTR_READ_COUNT = "changestream_spec.subscription.read_count"
"""Number of change documents actually read (integer)."""

# =============================================================================
# Operation Attributes
# =============================================================================

ATTR_OPERATION_COUNT = "changestream_spec.operation.count"
"""Number of scripted operations in a scenario (integer)."""

ATTR_OPERATION_NAME = "changestream_spec.operation.name"
"""Fixture name of an operation (e.g. 'insertOne')."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier (e.g. 'mongodb')."""

ATTR_DB_NAME = "db.name"
"""Name of the database being accessed."""

# =============================================================================
# Verification Attributes
# =============================================================================

ATTR_EXPECTED_EVENTS = "changestream_spec.verify.expected_events"
"""Number of expected command-started events (integer)."""

ATTR_RECORDED_EVENTS = "changestream_spec.verify.recorded_events"
"""Number of recorded command-started events (integer)."""

ATTR_ERROR_TYPE = "error.type"
"""Exception class name when an operation fails."""
