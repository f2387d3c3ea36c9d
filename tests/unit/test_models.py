"""
Unit tests for specification document models.
"""

import pytest
from pydantic import ValidationError

from changestream_spec.clients import ChangeStreamTarget
from changestream_spec.models import (
    ExpectedOutcome,
    OperationDescriptor,
    SpecDocument,
    TestSpecification,
    parse_version,
)


class TestParseVersion:
    """Tests for parse_version()."""

    def test_dotted(self):
        """Test a plain dotted version."""
        assert parse_version("3.6.0") == (3, 6, 0)

    def test_suffix_ignored(self):
        """Test pre-release suffixes are dropped."""
        assert parse_version("4.2.0-rc1") == (4, 2, 0)

    def test_short(self):
        """Test missing components are not padded."""
        assert parse_version("4.0") == (4, 0)

    def test_invalid(self):
        """Test a version without digits is rejected."""
        with pytest.raises(ValueError, match="Invalid server version"):
            parse_version("latest")


class TestExpectedOutcome:
    """Tests for ExpectedOutcome."""

    def test_success(self):
        """Test a success outcome reads one change per declared shape."""
        outcome = ExpectedOutcome(success=[{"operationType": "insert"}, {}])
        assert not outcome.is_failure
        assert outcome.expected_read_count == 2
        assert outcome.success_shapes == [{"operationType": "insert"}, {}]

    def test_failure(self):
        """Test a failure outcome reads once so the error can surface."""
        outcome = ExpectedOutcome(error={"code": 40573})
        assert outcome.is_failure
        assert outcome.expected_read_count == 1
        assert outcome.success_shapes == []

    def test_neither(self):
        """Test an empty result is a success with nothing to read."""
        outcome = ExpectedOutcome()
        assert not outcome.is_failure
        assert outcome.expected_read_count == 0

    def test_both_rejected(self):
        """Test declaring success and error together is invalid."""
        with pytest.raises(ValidationError, match="either 'success' or 'error'"):
            ExpectedOutcome(success=[], error={"code": 1})


class TestTestSpecification:
    """Tests for TestSpecification."""

    def test_fixture_aliases(self, make_test):
        """Test camel-case fixture keys populate snake-case fields."""
        test = make_test(
            minServerVersion="3.6.0",
            changeStreamPipeline=[{"$match": {"x": 1}}],
            changeStreamOptions={"fullDocument": "updateLookup"},
        )
        assert test.min_server_version == "3.6.0"
        assert test.change_stream_pipeline == [{"$match": {"x": 1}}]
        assert test.change_stream_options == {"fullDocument": "updateLookup"}

    def test_target(self, make_test):
        """Test target strings map to ChangeStreamTarget."""
        assert make_test(target="client").target is ChangeStreamTarget.CLIENT
        assert make_test(target="database").target is ChangeStreamTarget.DATABASE

    def test_unknown_target(self, make_test):
        """Test an unknown target is rejected."""
        with pytest.raises(ValidationError):
            make_test(target="cluster")

    def test_expected_events(self, make_test):
        """Test expectations are unwrapped."""
        test = make_test(
            expectations=[{"command_started_event": {"command_name": "aggregate"}}]
        )
        assert test.expected_events == [{"command_name": "aggregate"}]

    def test_defaults(self):
        """Test optional fields default to empty."""
        test = TestSpecification.model_validate({"description": "d", "target": "collection"})
        assert test.operations == []
        assert test.expectations == []
        assert test.result == ExpectedOutcome()
        assert test.skip is False
        assert test.only is False
        assert test.topology is None

    def test_frozen(self, make_test):
        """Test scenarios are immutable."""
        test = make_test()
        with pytest.raises(ValidationError):
            test.description = "changed"


class TestOperationDescriptor:
    """Tests for OperationDescriptor."""

    def test_document(self):
        """Test the document argument is exposed."""
        descriptor = OperationDescriptor.model_validate(
            {
                "database": "db",
                "collection": "c",
                "name": "insertOne",
                "arguments": {"document": {"x": 1}, "ordered": True},
            }
        )
        assert descriptor.document == {"x": 1}

    def test_no_arguments(self):
        """Test a missing arguments object yields no document."""
        descriptor = OperationDescriptor(database="db", collection="c", name="drop")
        assert descriptor.document is None


class TestSpecDocument:
    """Tests for SpecDocument."""

    def test_all_databases(self):
        """Test both suite databases are listed."""
        document = SpecDocument(database_name="a", database_name_2="b", collection_name="c")
        assert document.all_databases == ["a", "b"]

    def test_single_database(self):
        """Test the secondary database is optional."""
        document = SpecDocument(database_name="a", collection_name="c")
        assert document.all_databases == ["a"]
