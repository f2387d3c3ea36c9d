"""
Loading of specification documents from JSON files.

Documents are validated into immutable models when loaded, and every
scripted operation is checked against the operation registry, so an
unknown operation name or a missing required document is reported before
any scenario runs.

Example:
    >>> document = load_spec_document("tests/data/change-streams.json")
    >>> [test.description for test in document.tests]
    ['The watch helper must not throw a custom exception ...', ...]
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from changestream_spec.exceptions import ConfigError
from changestream_spec.models import SpecDocument
from changestream_spec.operations import OperationRegistry, default_registry

logger = logging.getLogger(__name__)


def parse_spec_document(
    data: Mapping[str, Any],
    registry: OperationRegistry = default_registry,
) -> SpecDocument:
    """
    Validate a decoded JSON document.

    Args:
        data: Decoded specification document
        registry: Registry the scripted operations are checked against

    Returns:
        Validated SpecDocument

    Raises:
        ConfigError: If the document is malformed or names an unsupported
            operation
    """
    try:
        document = SpecDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid specification document: {e}") from e

    for test in document.tests:
        for index, operation in enumerate(test.operations):
            try:
                registry.validate(operation.name, operation.document)
            except ConfigError as e:
                raise ConfigError(f"{test.description!r}, operation {index}: {e}") from e

    return document


def load_spec_document(
    path: str | Path,
    registry: OperationRegistry = default_registry,
) -> SpecDocument:
    """
    Read and validate one specification file.

    Raises:
        ConfigError: If the file is not valid JSON or not a valid document
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a JSON object at the top level")

    try:
        document = parse_spec_document(data, registry)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e

    logger.debug(
        f"Loaded {len(document.tests)} scenario(s) from {path.name}",
        extra={"path": str(path), "scenarios": len(document.tests)},
    )
    return document


def load_spec_directory(
    directory: str | Path,
    registry: OperationRegistry = default_registry,
) -> dict[str, SpecDocument]:
    """
    Load every ``*.json`` file of a directory, keyed by file stem.

    Files are read in name order.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ConfigError(f"{directory} is not a directory")
    return {
        path.stem: load_spec_document(path, registry)
        for path in sorted(directory.glob("*.json"))
    }


__all__ = ["load_spec_directory", "load_spec_document", "parse_spec_document"]
