"""Tunable parameters for type inference sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from goalti.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_TIME_LIMIT_MS = "GOALTI_TIME_LIMIT_MS"
ENV_MAX_DEPTH = "GOALTI_MAX_DEPTH"

DEFAULT_MAX_DEPTH = 200


@dataclass(frozen=True)
class InferenceConfig:
    """All tunable parameters in one place.

    Attributes:
        time_limit_ms: Default budget for ``evaluate_type`` when the caller
            passes neither a limit nor a pruner. ``None`` means unbounded.
        max_depth: Longest active goal path a session may build. Goals
            requested below it finish absent. Sessions lower it further
            when the interpreter's recursion limit leaves less room.

    """

    time_limit_ms: int | None = None
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self) -> None:
        if self.time_limit_ms is not None and self.time_limit_ms < 0:
            msg = f"time_limit_ms must be >= 0, got {self.time_limit_ms}"
            raise ConfigError(msg)
        if self.max_depth < 1:
            msg = f"max_depth must be >= 1, got {self.max_depth}"
            raise ConfigError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> InferenceConfig:
        """Build a config from ``GOALTI_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Config with defaults for every unset variable

        Raises:
            ConfigError: If a variable is set but is not a valid integer

        """
        env = os.environ if environ is None else environ
        time_limit = _read_int(env, ENV_TIME_LIMIT_MS)
        max_depth = _read_int(env, ENV_MAX_DEPTH)
        return cls(
            time_limit_ms=time_limit,
            max_depth=DEFAULT_MAX_DEPTH if max_depth is None else max_depth,
        )


def _read_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigError(msg) from None
