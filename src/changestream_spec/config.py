"""
Configuration for running change stream specification suites.

This module provides:
- RunnerConfig: Settings shared by every scenario of a suite run
"""

from __future__ import annotations

import os
from dataclasses import dataclass

ENV_URI = "CHANGESTREAM_SPEC_URI"
ENV_SETTLE_DELAY = "CHANGESTREAM_SPEC_SETTLE_DELAY"
ENV_TRACING = "CHANGESTREAM_SPEC_TRACING"

DEFAULT_SETTLE_DELAY = 0.2

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class RunnerConfig:
    """
    Configuration for a suite run.

    Attributes:
        uri: Connection string of the store under test (None when an
            in-process store is used)
        settle_delay: Seconds to wait after starting the subscription drain
            before the first scripted operation runs, so the subscription is
            established before any mutation
        wrap_store_errors: If True, a store error on a scenario that expected
            success is raised as UnexpectedFailureError instead of the
            original exception
        enable_tracing: Emit OpenTelemetry spans when OpenTelemetry is installed

    Example:
        >>> config = RunnerConfig(settle_delay=0.05)
        >>> config = RunnerConfig.from_env()
    """

    uri: str | None = None
    settle_delay: float = DEFAULT_SETTLE_DELAY
    wrap_store_errors: bool = False
    enable_tracing: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.settle_delay < 0:
            raise ValueError(
                f"settle_delay must be >= 0, got {self.settle_delay}. "
                f"Use a value like {DEFAULT_SETTLE_DELAY} (default) seconds."
            )

        if self.uri is not None and not self.uri.strip():
            raise ValueError("uri must not be blank. Use None for an in-process store.")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> RunnerConfig:
        """
        Build a configuration from environment variables.

        Reads CHANGESTREAM_SPEC_URI, CHANGESTREAM_SPEC_SETTLE_DELAY and
        CHANGESTREAM_SPEC_TRACING. Unset variables keep their defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            RunnerConfig instance

        Raises:
            ValueError: If a variable holds an unparseable value
        """
        env = os.environ if environ is None else environ

        settle_raw = env.get(ENV_SETTLE_DELAY)
        try:
            settle_delay = DEFAULT_SETTLE_DELAY if settle_raw is None else float(settle_raw)
        except ValueError:
            raise ValueError(
                f"{ENV_SETTLE_DELAY} must be a number of seconds, got {settle_raw!r}"
            ) from None

        tracing_raw = env.get(ENV_TRACING)
        if tracing_raw is None:
            enable_tracing = True
        elif tracing_raw.strip().lower() in _TRUTHY:
            enable_tracing = True
        elif tracing_raw.strip().lower() in _FALSY:
            enable_tracing = False
        else:
            raise ValueError(f"{ENV_TRACING} must be a boolean flag, got {tracing_raw!r}")

        return cls(
            uri=env.get(ENV_URI) or None,
            settle_delay=settle_delay,
            enable_tracing=enable_tracing,
        )
