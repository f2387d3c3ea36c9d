"""
Suite runner for change stream specification documents.

SpecRunner drives every scenario of one document through the same steps:

1. Check the scenario's skip flag and server requirements
2. Drop the suite databases, recreate the suite collection and connect a
   fresh monitored client
3. Run the orchestrator (subscription and operation script)
4. Verify the outcome and the recorded command-started events
5. Tear down the subscription and the client, whatever happened before

Example:
    >>> suite = SuiteContext.in_memory(load_spec_document("change-streams.json"))
    >>> runner = SpecRunner(suite)
    >>> for result in await runner.run_all():
    ...     print(result)
    >>> await suite.close()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from changestream_spec.models import TestSpecification
from changestream_spec.observability import (
    ATTR_DB_NAME,
    ATTR_DB_SYSTEM,
    ATTR_EXPECTED_EVENTS,
    ATTR_RECORDED_EVENTS,
    ATTR_SCENARIO,
    Tracer,
    create_tracer,
    mark_outcome,
)
from changestream_spec.operations import OperationRegistry, default_registry
from changestream_spec.scenarios.context import SuiteContext
from changestream_spec.scenarios.orchestrator import ScenarioOrchestrator
from changestream_spec.scenarios.requirements import unmet_requirement
from changestream_spec.scenarios.verifier import verify

logger = logging.getLogger(__name__)


class ScenarioStatus(Enum):
    """Status of scenario execution."""

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"
    SKIP = "skip"


@dataclass
class ScenarioResult:
    """Result of scenario execution."""

    description: str
    status: ScenarioStatus
    duration_ms: float
    error_message: str | None = None

    @property
    def passed(self) -> bool:
        return self.status is ScenarioStatus.PASS

    def __str__(self) -> str:
        status_str = self.status.value.upper()
        duration_str = f"{self.duration_ms:.2f}ms"

        if self.error_message:
            return f"{status_str} {self.description} ({duration_str}): {self.error_message}"
        return f"{status_str} {self.description} ({duration_str})"


class SpecRunner:
    """
    Runs the scenarios of one specification document.

    Args:
        suite: Suite-wide state (document, admin client, client factory, config)
        registry: Registry resolving operation names
        tracer: Optional custom Tracer instance; defaults to one created
            from suite.config.enable_tracing
    """

    def __init__(
        self,
        suite: SuiteContext,
        *,
        registry: OperationRegistry = default_registry,
        tracer: Tracer | None = None,
    ) -> None:
        self._suite = suite
        self._tracer = tracer or create_tracer(__name__, suite.config.enable_tracing)
        self._orchestrator = ScenarioOrchestrator(
            settle_delay=suite.config.settle_delay,
            registry=registry,
            tracer=self._tracer,
        )

    @property
    def suite(self) -> SuiteContext:
        return self._suite

    async def skip_reason(self, test: TestSpecification) -> str | None:
        """Reason test must not run, or None when it should run."""
        if test.skip:
            return "marked skip"
        return unmet_requirement(test, await self._suite.server_info())

    async def run_scenario(self, test: TestSpecification) -> None:
        """
        Run one scenario and verify it.

        Requirements and the skip flag are not checked here; see run_all()
        and skip_reason().

        Raises:
            AssertionError: A MismatchError (or another verification error)
                when the scenario does not meet its expectations
            Exception: The scenario's own error when success was expected
        """
        document = self._suite.document
        logger.info(f"Running scenario: {test.description}", extra={"scenario": test.description})

        with self._tracer.span(
            "changestream_spec.scenario.run",
            {
                ATTR_SCENARIO: test.description,
                ATTR_DB_SYSTEM: "mongodb",
                ATTR_DB_NAME: document.database_name,
            },
        ) as span:
            context = await self._suite.open_run_context()
            try:
                outcome = await self._orchestrator.run(context, test)
                recorded = context.event_log.events
                with self._tracer.span(
                    "changestream_spec.scenario.verify",
                    {
                        ATTR_EXPECTED_EVENTS: len(test.expectations),
                        ATTR_RECORDED_EVENTS: len(recorded),
                    },
                ):
                    verify(
                        outcome,
                        recorded,
                        test.result,
                        test.expected_events,
                        wrap_store_errors=self._suite.config.wrap_store_errors,
                    )
            except BaseException as e:
                mark_outcome(span, e)
                raise
            finally:
                await context.teardown()

            mark_outcome(span)

        logger.info(f"Scenario passed: {test.description}", extra={"scenario": test.description})

    async def run_all(self) -> list[ScenarioResult]:
        """
        Run every scenario of the document in file order.

        When any scenario is flagged ``only``, the others are skipped.
        A failing scenario does not stop the run.

        Returns:
            One ScenarioResult per scenario
        """
        tests = self._suite.document.tests
        focused = any(test.only for test in tests)
        results: list[ScenarioResult] = []

        for test in tests:
            start = time.perf_counter()
            reason: str | None = None
            try:
                if focused and not test.only:
                    reason = "not flagged only"
                else:
                    reason = await self.skip_reason(test)
                if reason is None:
                    await self.run_scenario(test)
            except AssertionError as e:
                status, message = ScenarioStatus.FAIL, str(e)
                logger.info(
                    f"Scenario failed: {test.description}: {e}",
                    extra={"scenario": test.description},
                )
            except Exception as e:
                status, message = ScenarioStatus.ERROR, f"{type(e).__name__}: {e}"
                logger.info(
                    f"Scenario errored: {test.description}: {message}",
                    extra={"scenario": test.description, "error_type": type(e).__name__},
                )
            else:
                if reason is not None:
                    status, message = ScenarioStatus.SKIP, reason
                    logger.warning(
                        f"Skipping scenario {test.description}: {reason}",
                        extra={"scenario": test.description, "reason": reason},
                    )
                else:
                    status, message = ScenarioStatus.PASS, None

            results.append(
                ScenarioResult(
                    description=test.description,
                    status=status,
                    duration_ms=(time.perf_counter() - start) * 1000,
                    error_message=message,
                )
            )

        passed = sum(1 for result in results if result.passed)
        logger.info(
            f"Ran {len(results)} scenario(s), {passed} passed",
            extra={"total": len(results), "passed": passed},
        )
        return results


__all__ = ["ScenarioResult", "ScenarioStatus", "SpecRunner"]
