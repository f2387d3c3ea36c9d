"""
Canonicalization of raw values before they are matched against fixtures.

This module provides:
- camel_case / snake_case: total, deterministic key-style transforms
- normalize_event: renames the top-level keys of a command-started record
- to_json_shape: converts BSON values into relaxed extended-JSON shapes
- describe_error: a mapping view of a store error for error fixtures
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from bson import json_util

# Words are runs of lowercase letters (optionally led by one capital),
# runs of capitals not followed by a lowercase letter, or runs of digits.
_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")


def split_words(key: str) -> list[str]:
    """Split a key into words on separators and case boundaries."""
    return _WORD_RE.findall(key)


def camel_case(key: str) -> str:
    """
    Convert a key to camel case.

    Separators (``_``, ``-``, spaces, ``$`` and any other non-alphanumeric
    character) are dropped and case boundaries start new words. Always
    returns a string, possibly empty, for any input.

    Example:
        >>> camel_case("command_started_event")
        'commandStartedEvent'
        >>> camel_case("databaseName")
        'databaseName'
        >>> camel_case("request_ID")
        'requestId'
    """
    words = split_words(key)
    if not words:
        return ""
    head, *tail = words
    return head.lower() + "".join(word[:1].upper() + word[1:].lower() for word in tail)


def snake_case(key: str) -> str:
    """
    Convert a key to snake case.

    Example:
        >>> snake_case("fullDocument")
        'full_document'
        >>> snake_case("resumeAfter")
        'resume_after'
    """
    return "_".join(word.lower() for word in split_words(key))


def normalize_event(raw: Mapping[str, Any]) -> dict[str, Any]:
    """
    Rename the top-level keys of a monitoring record into camel case.

    Nested values are returned untouched; a command document keeps its own
    field names. Keys that are already camel case are unchanged, so expected
    fixtures and raw records both normalize to the same canonical form.

    Args:
        raw: Raw command-started record or expected-event fixture

    Returns:
        New dictionary with renamed top-level keys
    """
    return {camel_case(key): value for key, value in raw.items()}


def to_json_shape(value: Any) -> Any:
    """
    Convert a BSON-bearing value into plain JSON-compatible Python values.

    ObjectIds, timestamps and binary values become their relaxed
    extended-JSON documents (e.g. ``{"$oid": "..."}``), numbers stay numbers.

    Args:
        value: Document, list or scalar as returned by the store client

    Returns:
        Structure made only of dicts, lists, strings, numbers, bools and None
    """
    return json.loads(json_util.dumps(value, json_options=json_util.RELAXED_JSON_OPTIONS))


def describe_error(error: BaseException) -> dict[str, Any]:
    """
    Build a mapping view of an error for matching against error fixtures.

    Server error replies carried on ``error.details`` provide the base
    fields (``code``, ``codeName``, ``errmsg``, ``errorLabels``...). Missing
    fields are filled from the exception's own attributes.

    Args:
        error: Exception raised by the store client

    Returns:
        JSON-shaped dictionary describing the error
    """
    details = getattr(error, "details", None)
    view: dict[str, Any] = dict(details) if isinstance(details, Mapping) else {}

    code = getattr(error, "code", None)
    if code is not None:
        view.setdefault("code", code)

    code_name = getattr(error, "code_name", None)
    if code_name:
        view.setdefault("codeName", code_name)

    message = str(error)
    view.setdefault("errmsg", message)
    view.setdefault("message", message)
    view.setdefault("name", type(error).__name__)

    return to_json_shape(view)


__all__ = [
    "camel_case",
    "describe_error",
    "normalize_event",
    "snake_case",
    "split_words",
    "to_json_shape",
]
