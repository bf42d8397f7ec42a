"""Evaluated type values produced by type goals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class EvaluatedType:
    """Base for inferred types."""

    def type_name(self) -> str:
        """Human-readable name of the type."""
        return type(self).__name__


@dataclass(frozen=True)
class SimpleType(EvaluatedType):
    """A built-in type of the source language: number, string, list, ..."""

    name: str

    def type_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class ClassType(EvaluatedType):
    """A user-declared class, optionally qualified by its module."""

    name: str
    module: str | None = None

    def type_name(self) -> str:
        if self.module:
            return f"{self.module}.{self.name}"
        return self.name


@dataclass(frozen=True)
class UnknownType(EvaluatedType):
    """The evaluator ran but could not tell the type."""

    def type_name(self) -> str:
        return "unknown"


UNKNOWN = UnknownType()


@dataclass(frozen=True)
class AmbiguousType(EvaluatedType):
    """One of several possible types."""

    possibilities: frozenset[EvaluatedType]

    def type_name(self) -> str:
        names = sorted(t.type_name() for t in self.possibilities)
        return " | ".join(names)


def combine_types(types: Iterable[EvaluatedType | None]) -> EvaluatedType | None:
    """Merge several inferred types into one.

    Absent and unknown entries are dropped and nested ambiguities are
    flattened.

    Args:
        types: Types to merge, typically subgoal results

    Returns:
        None if nothing is known, the single type if only one remains,
        otherwise an AmbiguousType over the distinct types

    Example:
        combine_types([SimpleType("int"), None]) == SimpleType("int")

    """
    seen: dict[EvaluatedType, None] = {}
    for t in types:
        match t:
            case None | UnknownType():
                continue
            case AmbiguousType(possibilities=options):
                seen.update(dict.fromkeys(options))
            case _:
                seen[t] = None

    if not seen:
        return None
    if len(seen) == 1:
        return next(iter(seen))
    return AmbiguousType(frozenset(seen))
