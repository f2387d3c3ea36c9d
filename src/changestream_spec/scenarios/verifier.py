"""
Assertions of a scenario outcome and its recorded events against fixtures.

Verification stops at the first violated assertion. The declared outcome
is checked first, then the command-started events: expected event i is
compared with recorded event i, recorded events beyond the expected ones
are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from changestream_spec.exceptions import (
    MissingEventError,
    UnexpectedFailureError,
    UnexpectedSuccessError,
)
from changestream_spec.matching import assert_matches
from changestream_spec.models import ExpectedOutcome
from changestream_spec.normalization import describe_error, normalize_event, to_json_shape
from changestream_spec.scenarios.orchestrator import ScenarioOutcome

logger = logging.getLogger(__name__)


def verify_outcome(
    outcome: ScenarioOutcome,
    expected: ExpectedOutcome,
    *,
    wrap_store_errors: bool = False,
) -> None:
    """
    Check the outcome variant and match its value or error.

    Args:
        outcome: Result of the orchestrator
        expected: Declared outcome
        wrap_store_errors: Raise UnexpectedFailureError instead of the
            original error when success was expected

    Raises:
        UnexpectedSuccessError: An error was declared but the scenario resolved
        MismatchError: The value or error does not match its declared shape
        Exception: The scenario's own error when success was declared
    """
    if expected.is_failure:
        if outcome.succeeded:
            raise UnexpectedSuccessError(expected.error or {}, outcome.value)
        assert outcome.error is not None
        assert_matches(describe_error(outcome.error), expected.error, path="$error")
        return

    if not outcome.succeeded:
        assert outcome.error is not None
        if wrap_store_errors:
            raise UnexpectedFailureError(outcome.error) from outcome.error
        raise outcome.error

    assert_matches(to_json_shape(outcome.value or []), expected.success_shapes, path="$result")


def verify_events(
    recorded_events: Sequence[Mapping[str, Any]],
    expected_events: Sequence[Mapping[str, Any]],
) -> None:
    """
    Match recorded command-started events against expected ones by position.

    Both sides are normalized to camel-case top-level keys first.

    Raises:
        MissingEventError: Fewer events were recorded than expected
        MismatchError: An event does not match its expectation
    """
    for index, expected in enumerate(expected_events):
        if index >= len(recorded_events):
            raise MissingEventError(index)
        actual = to_json_shape(normalize_event(recorded_events[index]))
        assert_matches(actual, normalize_event(expected), path=f"$events[{index}]")


def verify(
    outcome: ScenarioOutcome,
    recorded_events: Sequence[Mapping[str, Any]],
    expected_outcome: ExpectedOutcome,
    expected_events: Sequence[Mapping[str, Any]],
    *,
    wrap_store_errors: bool = False,
) -> None:
    """
    Verify a scenario's outcome, then its command-started events.

    Args:
        outcome: Result of the orchestrator
        recorded_events: Raw command-started records, in arrival order
        expected_outcome: Declared outcome
        expected_events: Declared command-started event shapes, in order
        wrap_store_errors: See verify_outcome()
    """
    verify_outcome(outcome, expected_outcome, wrap_store_errors=wrap_store_errors)
    verify_events(recorded_events, expected_events)
    logger.debug(
        f"Verified outcome and {len(expected_events)} event(s)",
        extra={"expected_events": len(expected_events), "recorded_events": len(recorded_events)},
    )


__all__ = ["verify", "verify_events", "verify_outcome"]
