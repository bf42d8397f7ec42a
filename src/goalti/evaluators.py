"""Goal evaluators: per-goal workers driven by the goal engine.

An evaluator is created for exactly one goal. The engine calls ``init`` once
to collect the first subgoals, resolves them, and hands their results to
``resume`` until the evaluator answers with ``Done``::

    class ReturnTypeEvaluator(GoalEvaluator[ReturnTypeGoal]):
        def init(self) -> list[Goal[Any]]:
            return [ExpressionTypeGoal(self.goal.context, node_id=n) for n in ...]

        def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
            return Done(combine_types(results.values()))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from goalti.context import ItemReference, ReferenceKind
from goalti.goals import FieldReferencesGoal, Goal, MethodCallsGoal

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class NeedMore:
    """The evaluator is not finished and needs these goals resolved first.

    An empty tuple asks to be resumed again without new subgoals.
    """

    goals: tuple[Goal[Any], ...] = ()


@dataclass(frozen=True)
class Done:
    """The evaluator is finished. ``None`` means no result."""

    result: Any = None


type Outcome = NeedMore | Done


class GoalEvaluator[G: Goal[Any]](ABC):
    """Base class for evaluators.

    Subclasses keep whatever state they need between ``resume`` calls on
    ``self``. They must not mutate the goals or results they receive.
    """

    def __init__(self, goal: G) -> None:
        self.goal = goal

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.goal!r})"

    @abstractmethod
    def init(self) -> list[Goal[Any]]:
        """Return the first subgoals. Called exactly once.

        Returning an empty list makes the engine call ``resume({})`` once
        to collect the immediate result.
        """
        ...

    @abstractmethod
    def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
        """Consume the results of the last requested subgoals.

        Args:
            results: Result for each subgoal requested by the previous
                ``init``/``resume`` call, in request order. A subgoal that
                closes a cycle, was pruned, or has no evaluator maps to None.

        Returns:
            NeedMore with further subgoals, or Done with the final result

        """
        ...


class NullGoalEvaluator(GoalEvaluator[Goal[Any]]):
    """Stands in when no evaluator can be built for a goal."""

    def init(self) -> list[Goal[Any]]:
        return []

    def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
        return Done(None)


class FixedAnswerEvaluator(GoalEvaluator[Goal[Any]]):
    """Answers its goal with a preset value, without subgoals."""

    def __init__(self, goal: Goal[Any], answer: Any) -> None:
        super().__init__(goal)
        self.answer = answer

    def init(self) -> list[Goal[Any]]:
        return []

    def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
        return Done(self.answer)


class _IndexSearchEvaluator[G: FieldReferencesGoal | MethodCallsGoal](
    GoalEvaluator[G],
):
    """Searches the context's source index once and reports what it found."""

    reference_kind: ReferenceKind

    def init(self) -> list[Goal[Any]]:
        return []

    def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
        index = self.goal.context.index
        found = index.find_references(
            self.goal.name,
            self.reference_kind,
            self.goal.parent,
        )
        return Done(tuple(ref for ref in found if isinstance(ref, ItemReference)))


class FieldReferencesGoalEvaluator(_IndexSearchEvaluator[FieldReferencesGoal]):
    """Finds the references to a field through the source index."""

    reference_kind = ReferenceKind.FIELD


class MethodCallsGoalEvaluator(_IndexSearchEvaluator[MethodCallsGoal]):
    """Finds the call sites of a method through the source index."""

    reference_kind = ReferenceKind.METHOD_CALL
