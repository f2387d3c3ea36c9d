"""
Scripted operations: name registry and deferred execution.
"""

from changestream_spec.operations.executor import (
    OperationAction,
    decode_document,
    make_operation,
)
from changestream_spec.operations.registry import (
    OperationHandler,
    OperationInfo,
    OperationRegistry,
    default_registry,
)

__all__ = [
    "OperationAction",
    "OperationHandler",
    "OperationInfo",
    "OperationRegistry",
    "decode_document",
    "default_registry",
    "make_operation",
]
