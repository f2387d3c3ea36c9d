"""
Unit tests for the operation registry and deferred operation actions.
"""

import pytest
from bson import ObjectId

from changestream_spec.exceptions import ConfigError, StoreError
from changestream_spec.models import OperationDescriptor
from changestream_spec.operations import (
    OperationRegistry,
    decode_document,
    default_registry,
    make_operation,
)


def _descriptor(name, document=None, collection="test"):
    arguments = {"document": document} if document is not None else None
    return OperationDescriptor.model_validate(
        {
            "database": "change-stream-tests",
            "collection": collection,
            "name": name,
            "arguments": arguments,
        }
    )


class TestOperationRegistry:
    """Tests for OperationRegistry."""

    def test_default_operations(self):
        """Test the built-in operation names."""
        assert default_registry.names() == [
            "countDocuments",
            "deleteMany",
            "deleteOne",
            "drop",
            "insertOne",
        ]
        assert "insertOne" in default_registry
        assert len(default_registry) == 5

    def test_register_and_resolve(self):
        """Test a registered handler is resolved by name."""
        registry = OperationRegistry()

        async def handler(collection, document):
            return None

        registry.register("noop", handler)
        info = registry.resolve("noop")
        assert info.name == "noop"
        assert info.handler is handler
        assert info.requires_document is False

    def test_decorator(self):
        """Test the decorator form registers and returns the handler."""
        registry = OperationRegistry()

        @registry.operation("custom", requires_document=True)
        async def custom(collection, document):
            return document

        assert registry.resolve("custom").handler is custom
        assert registry.resolve("custom").requires_document is True

    def test_duplicate(self):
        """Test names cannot be registered twice."""
        registry = OperationRegistry()

        async def handler(collection, document):
            return None

        registry.register("noop", handler)
        with pytest.raises(ConfigError, match="already registered"):
            registry.register("noop", handler)

    def test_unknown(self):
        """Test unknown names list the known ones."""
        with pytest.raises(ConfigError, match="Known operations: countDocuments, deleteMany"):
            default_registry.resolve("updateOne")

    def test_validate_requires_document(self):
        """Test operations that need a document reject its absence."""
        with pytest.raises(ConfigError, match="requires arguments.document"):
            default_registry.validate("insertOne", None)
        assert default_registry.validate("drop", None).name == "drop"


class TestDecodeDocument:
    """Tests for decode_document()."""

    def test_extended_json(self):
        """Test extended JSON values decode into BSON types."""
        decoded = decode_document({"_id": {"$oid": "5a8f0e5b8f8c1f3a2c8b4567"}, "x": 1})
        assert decoded == {"_id": ObjectId("5a8f0e5b8f8c1f3a2c8b4567"), "x": 1}

    def test_none(self):
        """Test a missing document stays missing."""
        assert decode_document(None) is None


class TestMakeOperation:
    """Tests for make_operation()."""

    def test_unknown_operation_fails_eagerly(self, client):
        """Test unknown names are rejected before anything runs."""
        with pytest.raises(ConfigError):
            make_operation(client, _descriptor("renameCollection"))

    @pytest.mark.asyncio
    async def test_deferred_until_called(self, client, server):
        """Test nothing is sent before the action is awaited."""
        events = []
        client.on_command_started(events.append)
        action = make_operation(client, _descriptor("insertOne", {"x": 1}))
        assert events == []
        assert server.documents("change-stream-tests", "test") == []

        result = await action()

        assert result.acknowledged
        assert [event["command_name"] for event in events] == ["insert"]
        assert server.documents("change-stream-tests", "test")[0]["x"] == 1

    @pytest.mark.asyncio
    async def test_each_call_runs_again(self, client, server):
        """Test an action may be awaited more than once."""
        action = make_operation(client, _descriptor("insertOne", {"x": 1}))
        await action()
        await action()
        assert len(server.documents("change-stream-tests", "test")) == 2

    @pytest.mark.asyncio
    async def test_delete_and_count(self, client, server):
        """Test deleteOne, deleteMany and countDocuments."""
        for value in (1, 1, 2):
            await make_operation(client, _descriptor("insertOne", {"x": value}))()

        assert await make_operation(client, _descriptor("countDocuments", {"x": 1}))() == 2
        deleted = await make_operation(client, _descriptor("deleteOne", {"x": 1}))()
        assert deleted.deleted_count == 1
        deleted = await make_operation(client, _descriptor("deleteMany"))()
        assert deleted.deleted_count == 2
        assert await make_operation(client, _descriptor("countDocuments"))() == 0

    @pytest.mark.asyncio
    async def test_drop(self, client, server):
        """Test drop removes the collection."""
        await make_operation(client, _descriptor("insertOne", {"x": 1}))()
        await make_operation(client, _descriptor("drop"))()
        assert not server.has_collection("change-stream-tests", "test")

    @pytest.mark.asyncio
    async def test_store_error_propagates(self, client):
        """Test store errors surface unchanged from the action."""
        action = make_operation(client, _descriptor("insertOne", {"_id": 1}))
        await action()
        with pytest.raises(StoreError) as exc_info:
            await action()
        assert exc_info.value.code == 11000
