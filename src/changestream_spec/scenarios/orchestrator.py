"""
Per-scenario driver interleaving a change subscription with scripted writes.

A scenario runs through four states:

- Init: the change subscription is opened on the declared target
- Running: two tasks run on the event loop, the drainer reading the
  expected number of change documents and the operation script running
  each operation after the previous one completed, preceded by a settling
  delay so the subscription is established before the first write
- Joined: both tasks are awaited to completion; neither cancels the other
- Terminal: the outcome holds either the drained change documents or the
  first error raised by either task, in completion order

Example:
    >>> orchestrator = ScenarioOrchestrator(settle_delay=0.2)
    >>> outcome = await orchestrator.run(run_context, test)
    >>> if outcome.succeeded:
    ...     print(outcome.value)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from changestream_spec.config import DEFAULT_SETTLE_DELAY
from changestream_spec.models import TestSpecification
from changestream_spec.observability import (
    ATTR_OPERATION_COUNT,
    ATTR_OPERATION_NAME,
    ATTR_TARGET,
    Tracer,
    create_tracer,
    mark_outcome,
)
from changestream_spec.operations import (
    OperationAction,
    OperationRegistry,
    default_registry,
    make_operation,
)
from changestream_spec.scenarios.context import RunContext
from changestream_spec.subscriptions import drain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioOutcome:
    """
    Terminal state of a scenario run.

    Exactly one of value and error is set.

    Attributes:
        value: Change documents read, in arrival order
        error: Error that rejected the scenario
    """

    value: list[Mapping[str, Any]] | None = None
    error: BaseException | None = None

    @classmethod
    def resolved(cls, value: list[Mapping[str, Any]]) -> ScenarioOutcome:
        return cls(value=value)

    @classmethod
    def rejected(cls, error: BaseException) -> ScenarioOutcome:
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ScenarioOrchestrator:
    """
    Runs one scenario's subscription and operation script concurrently.

    Args:
        settle_delay: Seconds between starting the drain and running the
            first operation
        registry: Registry resolving operation names
        tracer: Optional custom Tracer instance
        enable_tracing: If True and OpenTelemetry is available, emit traces.
            Ignored if tracer is explicitly provided.
    """

    def __init__(
        self,
        *,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        registry: OperationRegistry = default_registry,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        if settle_delay < 0:
            raise ValueError(f"settle_delay must be >= 0, got {settle_delay}")
        self._settle_delay = settle_delay
        self._registry = registry
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def run(self, context: RunContext, test: TestSpecification) -> ScenarioOutcome:
        """
        Open the subscription, run both branches, and resolve the outcome.

        Store errors never escape this method; they are returned as a
        rejected outcome.

        Args:
            context: Per-scenario state; the subscription is stored on it
            test: Scenario to run

        Returns:
            ScenarioOutcome holding the drained change documents or the error

        Raises:
            ConfigError: If an operation name is not registered
        """
        actions = [
            make_operation(context.client, descriptor, self._registry)
            for descriptor in test.operations
        ]
        expected_count = test.result.expected_read_count

        with self._tracer.span(
            "changestream_spec.scenario.orchestrate",
            {
                ATTR_TARGET: test.target.value,
                ATTR_OPERATION_COUNT: len(actions),
            },
        ) as span:
            try:
                context.subscription = context.client.open_change_stream(
                    test.target,
                    context.database_name,
                    context.collection_name,
                    test.change_stream_pipeline,
                    test.change_stream_options,
                )
            except Exception as e:
                logger.info(
                    f"Opening change stream failed: {e}",
                    extra={"scenario": test.description, "error_type": type(e).__name__},
                )
                mark_outcome(span, e)
                return ScenarioOutcome.rejected(e)

            drain_task = asyncio.create_task(
                drain(context.subscription, expected_count, tracer=self._tracer)
            )
            context.subscription_drained = True
            operations_task = asyncio.create_task(
                self._run_operations(actions, [d.name for d in test.operations])
            )

            first_error: BaseException | None = None
            for finished in asyncio.as_completed([drain_task, operations_task]):
                try:
                    await finished
                except Exception as e:
                    if first_error is None:
                        first_error = e
                    else:
                        logger.debug(
                            f"Ignoring later branch error: {e}",
                            extra={"scenario": test.description},
                        )

            if first_error is not None:
                mark_outcome(span, first_error)
                logger.debug(
                    f"Scenario rejected with {type(first_error).__name__}: {first_error}",
                    extra={"scenario": test.description},
                )
                return ScenarioOutcome.rejected(first_error)

            mark_outcome(span)
            return ScenarioOutcome.resolved(drain_task.result())

    async def _run_operations(self, actions: Sequence[OperationAction], names: Sequence[str]) -> None:
        """Wait out the settling delay, then run each action after the previous one."""
        await asyncio.sleep(self._settle_delay)
        for action, name in zip(actions, names, strict=True):
            with self._tracer.span(
                "changestream_spec.operation.run",
                {ATTR_OPERATION_NAME: name},
            ):
                await action()


__all__ = ["ScenarioOrchestrator", "ScenarioOutcome"]
