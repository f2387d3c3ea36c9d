"""
Unit tests for outcome and event verification.
"""

import pytest
from bson import ObjectId

from changestream_spec.exceptions import (
    MismatchError,
    MissingEventError,
    StoreError,
    UnexpectedFailureError,
    UnexpectedSuccessError,
)
from changestream_spec.models import ExpectedOutcome
from changestream_spec.scenarios import ScenarioOutcome, verify, verify_events, verify_outcome

INSERT_CHANGE = {
    "_id": {"_data": "0000000000000001"},
    "operationType": "insert",
    "ns": {"db": "change-stream-tests", "coll": "test"},
    "fullDocument": {"_id": ObjectId(), "x": 1},
}

AGGREGATE_EVENT = {
    "command_name": "aggregate",
    "database_name": "change-stream-tests",
    "command": {"aggregate": "test", "pipeline": [{"$changeStream": {}}], "cursor": {}},
    "request_id": 1,
    "operation_id": 1,
}


class TestVerifyOutcome:
    """Tests for verify_outcome()."""

    def test_success_matches(self):
        """Test a resolved outcome is matched against the success list."""
        expected = ExpectedOutcome(
            success=[{"_id": "42", "operationType": "insert", "fullDocument": {"x": 1}}]
        )
        verify_outcome(ScenarioOutcome.resolved([INSERT_CHANGE]), expected)

    def test_success_mismatch(self):
        """Test a differing change document fails under $result."""
        expected = ExpectedOutcome(success=[{"operationType": "delete"}])
        with pytest.raises(MismatchError) as exc_info:
            verify_outcome(ScenarioOutcome.resolved([INSERT_CHANGE]), expected)
        assert exc_info.value.path == "$result[0].operationType"

    def test_success_with_bson_values(self):
        """Test BSON values are compared in extended JSON form."""
        oid = INSERT_CHANGE["fullDocument"]["_id"]
        expected = ExpectedOutcome(success=[{"fullDocument": {"_id": {"$oid": str(oid)}}}])
        verify_outcome(ScenarioOutcome.resolved([INSERT_CHANGE]), expected)

    def test_rejection_reraised(self):
        """Test a rejection is re-raised unchanged when success was expected."""
        error = StoreError(40324, "bad stage")
        with pytest.raises(StoreError) as exc_info:
            verify_outcome(ScenarioOutcome.rejected(error), ExpectedOutcome(success=[]))
        assert exc_info.value is error

    def test_rejection_wrapped(self):
        """Test a rejection is wrapped when asked to."""
        error = StoreError(40324, "bad stage")
        with pytest.raises(UnexpectedFailureError) as exc_info:
            verify_outcome(
                ScenarioOutcome.rejected(error),
                ExpectedOutcome(success=[]),
                wrap_store_errors=True,
            )
        assert exc_info.value.error is error
        assert exc_info.value.__cause__ is error

    def test_failure_matches(self):
        """Test a rejection is matched against the error shape."""
        error = StoreError(40573, "not supported", "Location40573")
        verify_outcome(ScenarioOutcome.rejected(error), ExpectedOutcome(error={"code": 40573}))

    def test_failure_mismatch(self):
        """Test a different error code fails under $error."""
        error = StoreError(40324, "bad stage")
        with pytest.raises(MismatchError) as exc_info:
            verify_outcome(ScenarioOutcome.rejected(error), ExpectedOutcome(error={"code": 40573}))
        assert exc_info.value.path == "$error.code"

    def test_failure_expected_but_resolved(self):
        """Test success is reported when an error was declared."""
        with pytest.raises(UnexpectedSuccessError, match="expected error but got success"):
            verify_outcome(ScenarioOutcome.resolved([]), ExpectedOutcome(error={"code": 40573}))


class TestVerifyEvents:
    """Tests for verify_events()."""

    def test_fixture_naming_matches_raw_record(self):
        """Test snake-case fixtures match raw monitoring records."""
        expected = {
            "command_name": "aggregate",
            "database_name": "change-stream-tests",
            "command": {"aggregate": "test", "cursor": {}},
        }
        verify_events([AGGREGATE_EVENT], [expected])

    def test_camel_case_fixture(self):
        """Test camel-case fixtures match too."""
        verify_events([AGGREGATE_EVENT], [{"commandName": "aggregate"}])

    def test_extra_recorded_events_ignored(self):
        """Test events beyond the expected ones are not inspected."""
        verify_events([AGGREGATE_EVENT, {"command_name": "insert"}], [{"command_name": "aggregate"}])

    def test_missing_event(self):
        """Test a missing event names its index."""
        with pytest.raises(MissingEventError, match="expected event at index 1 but none recorded"):
            verify_events([AGGREGATE_EVENT], [{"command_name": "aggregate"}, {"command_name": "x"}])

    def test_event_mismatch(self):
        """Test a differing field fails with its position."""
        with pytest.raises(MismatchError) as exc_info:
            verify_events([AGGREGATE_EVENT], [{"command": {"aggregate": 1}}])
        assert exc_info.value.path == "$events[0].command.aggregate"

    def test_no_expectations(self):
        """Test an empty expectation list passes with no events."""
        verify_events([], [])


class TestVerify:
    """Tests for verify()."""

    def test_outcome_checked_before_events(self):
        """Test an outcome failure is reported even when events are missing."""
        with pytest.raises(UnexpectedSuccessError):
            verify(
                ScenarioOutcome.resolved([]),
                [],
                ExpectedOutcome(error={"code": 1}),
                [{"command_name": "aggregate"}],
            )

    def test_passes(self):
        """Test a matching outcome and event log pass."""
        verify(
            ScenarioOutcome.resolved([INSERT_CHANGE]),
            [AGGREGATE_EVENT],
            ExpectedOutcome(success=[{"operationType": "insert"}]),
            [{"command_name": "aggregate"}],
        )
