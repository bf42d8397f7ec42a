"""Tests for the built-in evaluators."""

from collections.abc import Mapping
from typing import Any

import pytest

from goalti.context import BasicContext, InMemorySourceIndex, ItemReference, ReferenceKind
from goalti.evaluators import (
    Done,
    FieldReferencesGoalEvaluator,
    FixedAnswerEvaluator,
    GoalEvaluator,
    MethodCallsGoalEvaluator,
    NeedMore,
    NullGoalEvaluator,
    Outcome,
)
from goalti.goals import FieldReferencesGoal, Goal, MethodCallsGoal


@pytest.fixture
def context() -> BasicContext:
    index = InMemorySourceIndex(
        [
            ItemReference("name", ReferenceKind.FIELD, "models.py", 10, 4, "User"),
            ItemReference("name", ReferenceKind.FIELD, "models.py", 80, 4, "Group"),
            ItemReference("save", ReferenceKind.METHOD, "models.py", 40, 4, "User"),
            ItemReference("save", ReferenceKind.METHOD_CALL, "views.py", 5, 4, "User"),
            ItemReference("save", ReferenceKind.METHOD_CALL, "jobs.py", 9, 4, "Group"),
        ],
    )
    return BasicContext(module="views.py", index=index)


class TestOutcomes:
    """Tests for NeedMore and Done."""

    def test_need_more_defaults_to_no_goals(self) -> None:
        assert NeedMore().goals == ()

    def test_done_defaults_to_absent(self) -> None:
        assert Done().result is None


class TestGoalEvaluator:
    """Tests for the evaluator base class."""

    def test_cannot_instantiate_abstract_base(self, context: BasicContext) -> None:
        with pytest.raises(TypeError):
            GoalEvaluator(FieldReferencesGoal(context, "x"))  # type: ignore[abstract]

    def test_bound_to_goal(self, context: BasicContext) -> None:
        goal = FieldReferencesGoal(context, "x")

        class Echo(GoalEvaluator[FieldReferencesGoal]):
            def init(self) -> list[Goal[Any]]:
                return []

            def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
                return Done(self.goal.name)

        evaluator = Echo(goal)
        assert evaluator.goal is goal
        assert evaluator.resume({}) == Done("x")
        assert "Echo" in repr(evaluator)


class TestNullAndFixed:
    """Tests for NullGoalEvaluator and FixedAnswerEvaluator."""

    def test_null_evaluator_answers_none(self, context: BasicContext) -> None:
        evaluator = NullGoalEvaluator(MethodCallsGoal(context, "x"))
        assert evaluator.init() == []
        assert evaluator.resume({}) == Done(None)

    def test_fixed_answer(self, context: BasicContext) -> None:
        evaluator = FixedAnswerEvaluator(MethodCallsGoal(context, "x"), ("a", "b"))
        assert evaluator.init() == []
        assert evaluator.resume({}) == Done(("a", "b"))


class TestIndexEvaluators:
    """Tests for the field reference and method call evaluators."""

    def test_field_references(self, context: BasicContext) -> None:
        evaluator = FieldReferencesGoalEvaluator(FieldReferencesGoal(context, "name"))
        assert evaluator.init() == []
        outcome = evaluator.resume({})
        assert isinstance(outcome, Done)
        assert [ref.parent for ref in outcome.result] == ["User", "Group"]
        assert all(ref.kind is ReferenceKind.FIELD for ref in outcome.result)

    def test_field_references_within_parent(self, context: BasicContext) -> None:
        goal = FieldReferencesGoal(context, "name", parent="Group")
        outcome = FieldReferencesGoalEvaluator(goal).resume({})
        assert outcome == Done(
            (ItemReference("name", ReferenceKind.FIELD, "models.py", 80, 4, "Group"),),
        )

    def test_method_calls_ignore_declarations(self, context: BasicContext) -> None:
        outcome = MethodCallsGoalEvaluator(MethodCallsGoal(context, "save")).resume({})
        assert isinstance(outcome, Done)
        assert [ref.module for ref in outcome.result] == ["views.py", "jobs.py"]

    def test_nothing_found_is_empty_tuple(self, context: BasicContext) -> None:
        outcome = MethodCallsGoalEvaluator(MethodCallsGoal(context, "load")).resume({})
        assert outcome == Done(())
