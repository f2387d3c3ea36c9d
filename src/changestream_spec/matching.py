"""
Expected-driven partial matching of fixture values.

The comparison walks the shape of the *expected* value, never the actual
one. Keys and array elements that the expected value does not name are
never inspected, so additional fields on the actual value are always
tolerated. The first discrepancy raises MismatchError and aborts the walk.

Two sentinels, the string ``"42"`` and the number ``42``, stand for
"any non-null value".

Example:
    >>> from changestream_spec.matching import assert_matches, matches
    >>>
    >>> actual = {"_id": {"_data": "8263"}, "operationType": "insert", "ns": {"db": "t"}}
    >>> assert_matches(actual, {"operationType": "insert", "_id": "42"})
    >>> matches([1, 2, 3], [1, 2])
    True
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from changestream_spec.exceptions import MismatchError, TypeMismatchError

WILDCARD_STRING = "42"
WILDCARD_NUMBER = 42


class Shape(Enum):
    """Closed set of expected-value shapes the matcher dispatches on."""

    WILDCARD = "wildcard"
    NULL = "null"
    ARRAY = "array"
    MAPPING = "mapping"
    SCALAR = "scalar"


def is_wildcard(value: Any) -> bool:
    """Return True if value is one of the "any non-null value" sentinels."""
    if isinstance(value, str):
        return value == WILDCARD_STRING
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return value == WILDCARD_NUMBER
    return False


def classify(expected: Any) -> Shape:
    """Classify an expected value into the shape the matcher handles it as."""
    if is_wildcard(expected):
        return Shape.WILDCARD
    if expected is None:
        return Shape.NULL
    if isinstance(expected, list | tuple):
        return Shape.ARRAY
    if isinstance(expected, Mapping):
        return Shape.MAPPING
    return Shape.SCALAR


def type_name(value: Any) -> str:
    """
    Name the type class of a value for the shape check.

    Numbers share one class whether int or float; booleans are their own
    class even though bool subclasses int.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def assert_matches(actual: Any, expected: Any, path: str = "$") -> None:
    """
    Assert that actual satisfies expected under partial-match rules.

    Args:
        actual: Observed value (already converted to a JSON-like shape)
        expected: Fixture value
        path: Location used in error messages

    Raises:
        MismatchError: On the first discrepancy found
        TypeMismatchError: When type classes disagree
    """
    shape = classify(expected)

    if shape is Shape.WILDCARD:
        if actual is None:
            raise MismatchError(path, expected, actual, reason="expected any non-null value")
        return

    if shape is Shape.NULL:
        if actual is not None:
            raise MismatchError(path, expected, actual, reason="expected no value")
        return

    expected_type = type_name(expected)
    actual_type = type_name(actual)
    if expected_type != actual_type:
        raise TypeMismatchError(path, expected, actual, expected_type, actual_type)

    if shape is Shape.ARRAY:
        for index, expected_item in enumerate(expected):
            actual_item = actual[index] if index < len(actual) else None
            assert_matches(actual_item, expected_item, f"{path}[{index}]")
        return

    if shape is Shape.MAPPING:
        for key, expected_value in expected.items():
            assert_matches(actual.get(key), expected_value, f"{path}.{key}")
        return

    if actual != expected:
        raise MismatchError(path, expected, actual)


def matches(actual: Any, expected: Any) -> bool:
    """Return True if actual satisfies expected, False otherwise."""
    try:
        assert_matches(actual, expected)
    except MismatchError:
        return False
    return True


__all__ = [
    "Shape",
    "WILDCARD_NUMBER",
    "WILDCARD_STRING",
    "assert_matches",
    "classify",
    "is_wildcard",
    "matches",
    "type_name",
]
