"""Pruners decide when a session should stop expanding goals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

_MS_PER_SECOND = 1000.0


@runtime_checkable
class Pruner(Protocol):
    """Stop strategy consulted by the engine before each expansion step."""

    def should_stop(self, elapsed: float) -> bool:
        """Return True once no further goals should be expanded.

        Args:
            elapsed: Seconds since the session started

        """
        ...


@dataclass(frozen=True)
class NeverPrune:
    """Never stops. Same as passing no pruner at all."""

    def should_stop(self, elapsed: float) -> bool:
        return False


@dataclass(frozen=True)
class TimeLimitPruner:
    """Stops once ``limit`` seconds of the session have passed.

    A limit of zero or less stops before the first goal is expanded.
    """

    limit: float

    @classmethod
    def from_millis(cls, millis: int) -> TimeLimitPruner:
        """Build a pruner from a budget in milliseconds."""
        return cls(millis / _MS_PER_SECOND)

    def should_stop(self, elapsed: float) -> bool:
        return elapsed >= self.limit


class AnyPruner:
    """Stops as soon as any of its pruners stops."""

    def __init__(self, *pruners: Pruner) -> None:
        self.pruners = pruners

    def __repr__(self) -> str:
        return f"AnyPruner{self.pruners!r}"

    def should_stop(self, elapsed: float) -> bool:
        return any(p.should_stop(elapsed) for p in self.pruners)
