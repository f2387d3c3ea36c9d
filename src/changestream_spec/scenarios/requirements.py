"""Server requirements a scenario declares (version range and topology)."""

from __future__ import annotations

from changestream_spec.clients.interface import ServerInfo
from changestream_spec.models import TestSpecification, parse_version


def _format_version(version: tuple[int, ...]) -> str:
    return ".".join(str(part) for part in version)


def _compare(left: tuple[int, ...], right: tuple[int, ...]) -> int:
    width = max(len(left), len(right))
    padded_left = left + (0,) * (width - len(left))
    padded_right = right + (0,) * (width - len(right))
    return (padded_left > padded_right) - (padded_left < padded_right)


def unmet_requirement(test: TestSpecification, server: ServerInfo) -> str | None:
    """
    Describe why test cannot run against server, or None when it can.

    Example:
        >>> unmet_requirement(test, ServerInfo(version=(3, 4, 0), topology="replicaset"))
        'requires server >= 3.6.0, found 3.4.0'
    """
    if test.min_server_version is not None:
        minimum = parse_version(test.min_server_version)
        if _compare(server.version, minimum) < 0:
            return (
                f"requires server >= {test.min_server_version}, "
                f"found {_format_version(server.version)}"
            )

    if test.max_server_version is not None:
        maximum = parse_version(test.max_server_version)
        if _compare(server.version, maximum) > 0:
            return (
                f"requires server <= {test.max_server_version}, "
                f"found {_format_version(server.version)}"
            )

    if test.topology is not None and server.topology not in test.topology:
        return f"requires topology in {test.topology}, found {server.topology!r}"

    return None


__all__ = ["unmet_requirement"]
