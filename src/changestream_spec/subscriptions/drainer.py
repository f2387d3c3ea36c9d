"""
Bounded draining of a live change subscription.

The drainer reads a fixed number of change documents one at a time, then
closes the subscription. The subscription is closed exactly once whether
the reads succeed or fail.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from changestream_spec.clients.interface import ChangeSubscription
from changestream_spec.observability import (
    ATTR_EXPECTED_COUNT,
    ATTR_READ_COUNT,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


async def drain(
    subscription: ChangeSubscription,
    expected_count: int,
    *,
    tracer: Tracer | None = None,
) -> list[Mapping[str, Any]]:
    """
    Read exactly expected_count change documents, then close the subscription.

    Reads are strictly sequential: the next read is issued only after the
    previous one returned. With expected_count == 0 no read is issued and
    the subscription is closed straight away.

    If a read fails, the subscription is still closed and the read error is
    raised; a failure of that close is logged and dropped. If every read
    succeeded but the close fails, the close error is raised.

    Args:
        subscription: Open change subscription
        expected_count: Number of change documents to read
        tracer: Optional tracer

    Returns:
        Change documents in arrival order

    Raises:
        ValueError: If expected_count is negative
        Exception: The first read error, or the close error
    """
    if expected_count < 0:
        raise ValueError(f"expected_count must be >= 0, got {expected_count}")

    tracer = tracer or create_tracer(__name__, enable_tracing=False)
    changes: list[Mapping[str, Any]] = []

    with tracer.span(
        "changestream_spec.subscription.drain",
        {ATTR_EXPECTED_COUNT: expected_count},
    ) as span:
        try:
            for index in range(expected_count):
                change = await subscription.read_next()
                changes.append(change)
                logger.debug(
                    f"Read change {index + 1}/{expected_count}",
                    extra={"index": index, "expected_count": expected_count},
                )
        except BaseException:
            await _close_after_failure(subscription)
            raise

        await subscription.close()

        if span is not None:
            span.set_attribute(ATTR_READ_COUNT, len(changes))

    return changes


async def _close_after_failure(subscription: ChangeSubscription) -> None:
    """Close a subscription whose read failed; the read error takes precedence."""
    try:
        await subscription.close()
    except Exception as close_error:
        logger.warning(
            f"Failed to close subscription after read error: {close_error}",
            exc_info=close_error,
        )


__all__ = ["drain"]
