"""
Tracing support: the Tracer implementations and span attribute names.

OpenTelemetry is optional (the ``telemetry`` extra). Without it every
component falls back to NullTracer.
"""

from changestream_spec.observability.attributes import (
    ATTR_DB_NAME,
    ATTR_DB_SYSTEM,
    ATTR_ERROR_TYPE,
    ATTR_EXPECTED_COUNT,
    ATTR_EXPECTED_EVENTS,
    ATTR_OPERATION_COUNT,
    ATTR_OPERATION_NAME,
    ATTR_OUTCOME,
    ATTR_READ_COUNT,
    ATTR_RECORDED_EVENTS,
    ATTR_SCENARIO,
    ATTR_TARGET,
)
from changestream_spec.observability.tracer import (
    OTEL_AVAILABLE,
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    RecordedSpan,
    SpanLike,
    Tracer,
    create_tracer,
    mark_outcome,
)

__all__ = [
    "OTEL_AVAILABLE",
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "RecordedSpan",
    "SpanLike",
    "Tracer",
    "create_tracer",
    "mark_outcome",
    "ATTR_DB_NAME",
    "ATTR_DB_SYSTEM",
    "ATTR_ERROR_TYPE",
    "ATTR_EXPECTED_COUNT",
    "ATTR_EXPECTED_EVENTS",
    "ATTR_OPERATION_COUNT",
    "ATTR_OPERATION_NAME",
    "ATTR_OUTCOME",
    "ATTR_READ_COUNT",
    "ATTR_RECORDED_EVENTS",
    "ATTR_SCENARIO",
    "ATTR_TARGET",
]
