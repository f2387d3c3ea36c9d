"""
Tracing for scenario runs.

Runners, the orchestrator and the drainer take a Tracer instead of importing
OpenTelemetry. Every tracer yields a span object from ``span()``; the null
tracer yields None, so callers go through ``mark_outcome`` rather than
touching the span directly.

Example:
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> with tracer.span("changestream_spec.scenario.run", {ATTR_SCENARIO: name}) as span:
    ...     try:
    ...         await run()
    ...     except Exception as e:
    ...         mark_outcome(span, e)
    ...         raise
    ...     mark_outcome(span)
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from changestream_spec.observability.attributes import ATTR_ERROR_TYPE, ATTR_OUTCOME

try:
    from opentelemetry import trace

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False
    trace = None  # type: ignore[assignment]


@runtime_checkable
class SpanLike(Protocol):
    """The part of a span the runner writes to."""

    def set_attribute(self, key: str, value: Any) -> Any: ...


@runtime_checkable
class Tracer(Protocol):
    """
    Source of tracing spans.

    Implementations:
    - NullTracer: tracing disabled, spans are None
    - OpenTelemetryTracer: spans from the global OpenTelemetry provider
    - MockTracer: RecordedSpan objects kept for assertions
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[SpanLike | None]: ...

    @property
    def enabled(self) -> bool: ...


class NullTracer:
    """Tracer used when tracing is off or OpenTelemetry is missing."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by ``opentelemetry.trace.get_tracer``.

    Exceptions leaving a span are recorded on it and set its status to
    error, which is OpenTelemetry's default for ``start_as_current_span``.

    Args:
        tracer_name: Instrumentation scope name, usually the module name

    Raises:
        ImportError: If OpenTelemetry is not installed
    """

    def __init__(self, tracer_name: str) -> None:
        if not OTEL_AVAILABLE:
            raise ImportError("opentelemetry-api is required for OpenTelemetryTracer")
        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[SpanLike | None]:
        return self._tracer.start_as_current_span(name, attributes=attributes or {})

    @property
    def enabled(self) -> bool:
        return True


@dataclass
class RecordedSpan:
    """A span captured by MockTracer, including attributes set while it was open."""

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value


class MockTracer:
    """
    Tracer for tests.

    Spans are recorded in the order they were opened.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("changestream_spec.subscription.drain", {"k": 1}) as span:
        ...     span.set_attribute("n", 2)
        >>> tracer.attributes("changestream_spec.subscription.drain")
        {'k': 1, 'n': 2}
    """

    def __init__(self) -> None:
        self.spans: list[RecordedSpan] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[RecordedSpan, None, None]:
        recorded = RecordedSpan(name, dict(attributes or {}))
        self.spans.append(recorded)
        yield recorded

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [span.name for span in self.spans]

    def attributes(self, name: str) -> dict[str, Any]:
        """
        Attributes of the most recent span with the given name.

        Raises:
            KeyError: If no such span was recorded
        """
        for span in reversed(self.spans):
            if span.name == name:
                return span.attributes
        raise KeyError(name)

    def clear(self) -> None:
        self.spans.clear()


def mark_outcome(span: SpanLike | None, error: BaseException | None = None) -> None:
    """Record success, or failure and the error type, on a span if there is one."""
    if span is None:
        return
    if error is None:
        span.set_attribute(ATTR_OUTCOME, "success")
    else:
        span.set_attribute(ATTR_OUTCOME, "failure")
        span.set_attribute(ATTR_ERROR_TYPE, type(error).__name__)


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Pick a tracer for a component.

    Returns an OpenTelemetryTracer when tracing is enabled and OpenTelemetry
    is importable, a NullTracer otherwise.
    """
    if enable_tracing and OTEL_AVAILABLE:
        return OpenTelemetryTracer(name)
    return NullTracer()


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
]
