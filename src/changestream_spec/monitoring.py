"""
Append-only recording of command-started events for one scenario.

An EventLog is attached to the scenario's dedicated client when the
scenario starts and closed at teardown. Records arriving after close are
ignored, so commands issued while tearing the client down never leak into
another scenario's log.

Example:
    >>> log = EventLog().attach(client)
    >>> await client.collection("db", "coll").insert_one({"x": 1})
    >>> log.events[0]["command_name"]
    'insert'
    >>> log.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from changestream_spec.clients.interface import DataStoreClient

logger = logging.getLogger(__name__)

RecordedEvent = dict[str, Any]


class EventLog:
    """
    Ordered log of raw command-started records.

    Attributes:
        events: Copy of the recorded events in arrival order (read-only)
        closed: Whether the log has stopped recording
    """

    def __init__(self) -> None:
        self._events: list[RecordedEvent] = []
        self._closed = False

    def attach(self, client: DataStoreClient) -> EventLog:
        """Subscribe this log to the client's command-started channel."""
        client.on_command_started(self.record)
        return self

    def record(self, event: Mapping[str, Any]) -> None:
        """Append one raw record. Called synchronously by the client."""
        if self._closed:
            logger.debug(
                f"Ignoring {event.get('command_name')} event recorded after close",
                extra={"command_name": event.get("command_name")},
            )
            return
        self._events.append(dict(event))

    def close(self) -> None:
        """Stop recording. Already recorded events stay available."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def events(self) -> list[RecordedEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[RecordedEvent]:
        return iter(list(self._events))

    def __repr__(self) -> str:
        return f"EventLog(events={len(self._events)}, closed={self._closed})"


__all__ = ["EventLog", "RecordedEvent"]
