"""Type inferencer: the public entry point over the goal engine.

Type evaluation becomes a root goal for a GoalEngine. Only the
FieldReferencesGoal and MethodCallsGoal evaluators are registered out of
the box; language support registers its own evaluators with
``register_evaluator`` or supplies a factory, which is consulted first.

Example:
    inferencer = DefaultTypeInferencer()
    inferencer.register_evaluator(ExpressionTypeGoal, ExpressionTypeEvaluator)
    t = inferencer.evaluate_type(ExpressionTypeGoal(ctx, node_id="x"), 500)

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from goalti.config import InferenceConfig
from goalti.engine import GoalEngine
from goalti.evaluators import FieldReferencesGoalEvaluator, MethodCallsGoalEvaluator
from goalti.goals import FieldReferencesGoal, MethodCallsGoal
from goalti.pruning import TimeLimitPruner
from goalti.registry import EvaluatorRegistry
from goalti.statistics import (
    StatisticsSink,
    add_statistics_listener,
    remove_statistics_listener,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from goalti.goals import AbstractTypeGoal, Goal
    from goalti.pruning import Pruner
    from goalti.registry import EvaluatorConstructor, EvaluatorFactory, GoalKind
    from goalti.statistics import StatisticsListener
    from goalti.types import EvaluatedType


class TypeInferencer(Protocol):
    """Answers "what is the type of this?" queries."""

    def evaluate_type(
        self,
        goal: AbstractTypeGoal,
        time_limit: int | Pruner | None = None,
    ) -> EvaluatedType | None:
        """Return the inferred type, or None if it could not be inferred."""
        ...


class DefaultTypeInferencer:
    """Demand-driven type inferencer with pluggable evaluators."""

    def __init__(
        self,
        user_factory: EvaluatorFactory | None = None,
        config: InferenceConfig | None = None,
    ) -> None:
        self.config = config or InferenceConfig()
        self.registry = EvaluatorRegistry(user_factory)
        self.engine = GoalEngine(self.registry, self.config)
        self._register_standard_evaluators()

    def _register_standard_evaluators(self) -> None:
        self.register_evaluator(FieldReferencesGoal, FieldReferencesGoalEvaluator)
        self.register_evaluator(MethodCallsGoal, MethodCallsGoalEvaluator)

    def register_evaluator(
        self,
        kind: GoalKind,
        constructor: EvaluatorConstructor,
    ) -> None:
        """Register the evaluator constructor for a goal kind.

        Raises:
            RegistrationError: If the constructor cannot build evaluators

        """
        self.registry.register(kind, constructor)

    def evaluate_type(
        self,
        goal: AbstractTypeGoal,
        time_limit: int | Pruner | None = None,
    ) -> EvaluatedType | None:
        """Infer the type a type goal asks for.

        Args:
            goal: The type goal to resolve
            time_limit: Budget in milliseconds, a pruner, or None to use
                ``config.time_limit_ms`` (unbounded when that is unset)

        Returns:
            The evaluated type, or None if it could not be inferred in time

        Raises:
            TypeError: If ``time_limit`` is a bool

        """
        return self.evaluate_goal(goal, self._pruner(time_limit))

    def evaluate_goal(
        self,
        goal: Goal[Any],
        pruner: Pruner | None = None,
        listeners: Iterable[StatisticsListener] = (),
    ) -> Any:
        """Resolve any goal, notifying ``listeners`` besides the global ones."""
        return self.engine.evaluate_goal(goal, pruner, StatisticsSink(*listeners))

    def _pruner(self, time_limit: int | Pruner | None) -> Pruner | None:
        if isinstance(time_limit, bool):
            msg = f"time_limit must be milliseconds or a Pruner, got {time_limit!r}"
            raise TypeError(msg)
        if isinstance(time_limit, int):
            return TimeLimitPruner.from_millis(time_limit)
        if time_limit is None and self.config.time_limit_ms is not None:
            return TimeLimitPruner.from_millis(self.config.time_limit_ms)
        return time_limit

    @staticmethod
    def add_statistics_listener(listener: StatisticsListener) -> None:
        """Register a process-wide statistics listener."""
        add_statistics_listener(listener)

    @staticmethod
    def remove_statistics_listener(listener: StatisticsListener) -> None:
        """Unregister a process-wide statistics listener."""
        remove_statistics_listener(listener)
