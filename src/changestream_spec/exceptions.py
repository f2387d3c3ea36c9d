"""Library exceptions for the changestream_spec package."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class ChangeStreamSpecError(Exception):
    """Base exception for changestream_spec library."""

    pass


class ConfigError(ChangeStreamSpecError):
    """Raised when a specification document or runner configuration is invalid."""

    pass


class MismatchError(ChangeStreamSpecError, AssertionError):
    """
    Raised when an actual value does not match its expected shape.

    Only the first discrepancy is reported; comparison stops there.

    Attributes:
        path: Location of the discrepancy (e.g. ``$[0].ns.coll``)
        expected: The expected value at that location
        actual: The actual value at that location
        reason: Short description of what differed
    """

    def __init__(self, path: str, expected: Any, actual: Any, reason: str = "values differ") -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        self.reason = reason
        super().__init__(f"Mismatch at {path}: {reason} (expected {expected!r}, got {actual!r})")


class TypeMismatchError(MismatchError):
    """Raised when the actual value has a different shape class than expected."""

    def __init__(self, path: str, expected: Any, actual: Any, expected_type: str, actual_type: str) -> None:
        self.expected_type = expected_type
        self.actual_type = actual_type
        super().__init__(
            path,
            expected,
            actual,
            reason=f"expected a value of type {expected_type}, got {actual_type}",
        )


class MissingEventError(ChangeStreamSpecError, AssertionError):
    """Raised when fewer command-started events were recorded than expected."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"expected event at index {index} but none recorded")


class UnexpectedSuccessError(ChangeStreamSpecError, AssertionError):
    """Raised when a scenario declared an error outcome but resolved successfully."""

    def __init__(self, expected_error: Mapping[str, Any], value: Any = None) -> None:
        self.expected_error = dict(expected_error)
        self.value = value
        super().__init__(f"expected error but got success (expected error {self.expected_error!r})")


class UnexpectedFailureError(ChangeStreamSpecError, AssertionError):
    """
    Raised when a scenario declared a success outcome but was rejected.

    Only used when the runner is configured to wrap store errors; otherwise
    the original error propagates unchanged.

    Attributes:
        error: The error that rejected the scenario
    """

    def __init__(self, error: BaseException) -> None:
        self.error = error
        super().__init__(f"expected success but got {type(error).__name__}: {error}")


class StoreError(ChangeStreamSpecError):
    """
    Raised by the in-memory store for server-side failures.

    Mirrors the shape of a server error reply so that expected-error
    fixtures such as ``{"code": 40573}`` can be matched against it.

    Attributes:
        code: Numeric server error code
        code_name: Symbolic error code name (optional)
        details: Full error reply document
    """

    def __init__(self, code: int, message: str, code_name: str | None = None) -> None:
        self.code = code
        self.code_name = code_name
        self.details: dict[str, Any] = {"ok": 0.0, "errmsg": message, "code": code}
        if code_name:
            self.details["codeName"] = code_name
        super().__init__(message)
