"""Goals: immutable inference queries with automatic kind registration."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, dataclass_transform

if TYPE_CHECKING:
    from goalti.context import BasicContext, ItemReference
    from goalti.types import EvaluatedType

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class GoalState(Enum):
    """Progress of a goal within one session. DONE is terminal."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    AWAITING_SUBGOALS = "awaiting_subgoals"
    DONE = "done"


def kind_from_class_name(name: str) -> str:
    """Derive a goal kind from a class name.

    Example:
        kind_from_class_name("FieldReferencesGoal") == "field_references"

    """
    return _CAMEL_BOUNDARY.sub("_", name).lower().removesuffix("_goal")


@dataclass(frozen=True)
@dataclass_transform(frozen_default=True)
class Goal[R]:
    """Base for inference goals. R is the result type.

    Goals with the same kind and the same field values are equal and hash
    alike, which is what the engine's session cache keys on.
    """

    kind: ClassVar[str]
    registry: ClassVar[dict[str, type[Goal[Any]]]] = {}

    context: BasicContext

    def __init_subclass__(cls, kind: str | None = None) -> None:
        """Register goal subclass with automatic kind derivation."""
        dataclass(frozen=True)(cls)
        cls.kind = kind if kind is not None else kind_from_class_name(cls.__name__)

        if (existing := Goal.registry.get(cls.kind)) and existing is not cls:
            msg = (
                f"Kind '{cls.kind}' already registered to {existing}. "
                "Choose a different kind."
            )
            raise ValueError(msg)

        Goal.registry[cls.kind] = cls


def goal_class(kind: str) -> type[Goal[Any]]:
    """Look up the goal class registered for a kind.

    Raises:
        KeyError: If no goal class uses this kind

    """
    if kind not in Goal.registry:
        available = sorted(Goal.registry)
        msg = f"Unknown goal kind '{kind}'. Registered kinds: {available}"
        raise KeyError(msg)
    return Goal.registry[kind]


class AbstractTypeGoal(Goal["EvaluatedType"], kind="abstract_type"):
    """Base for goals asking for the type of something."""


class FieldReferencesGoal(Goal[tuple["ItemReference", ...]]):
    """References to the field ``name``, optionally within type ``parent``."""

    name: str
    parent: str | None = None


class MethodCallsGoal(Goal[tuple["ItemReference", ...]]):
    """Call sites of the method ``name``, optionally within type ``parent``."""

    name: str
    parent: str | None = None
