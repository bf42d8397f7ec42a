"""Tests for the evaluator registry."""

import logging
from collections.abc import Mapping
from typing import Any

import pytest

from goalti.context import BasicContext
from goalti.errors import RegistrationError
from goalti.evaluators import (
    Done,
    FieldReferencesGoalEvaluator,
    FixedAnswerEvaluator,
    GoalEvaluator,
    MethodCallsGoalEvaluator,
    NullGoalEvaluator,
    Outcome,
)
from goalti.goals import FieldReferencesGoal, Goal, MethodCallsGoal
from goalti.registry import EvaluatorFactory, EvaluatorRegistry, goal_parameter

CTX = BasicContext(module="registry_test.py")


class LookupGoal(Goal[str]):
    """Goal used to exercise registry lookups."""

    name: str


class ScopedCallsGoal(MethodCallsGoal):
    """Method calls restricted to one scope."""


class LookupEvaluator(GoalEvaluator[LookupGoal]):
    def init(self) -> list[Goal[Any]]:
        return []

    def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
        return Done(f"built-in:{self.goal.name}")


class OverrideFactory:
    """User factory answering only for goals named 'special'."""

    def __init__(self) -> None:
        self.requests: list[Goal[Any]] = []

    def create_evaluator(self, goal: Goal[Any]) -> GoalEvaluator[Any] | None:
        self.requests.append(goal)
        if isinstance(goal, LookupGoal) and goal.name == "special":
            return FixedAnswerEvaluator(goal, "user")
        return None


class TestRegister:
    """Registration accepts evaluators and rejects caller errors."""

    def test_register_by_class(self) -> None:
        registry = EvaluatorRegistry()
        registry.register(LookupGoal, LookupEvaluator)
        assert LookupGoal in registry
        assert registry.is_registered("lookup")
        assert registry.kinds() == ["lookup"]

    def test_register_by_kind_name(self) -> None:
        registry = EvaluatorRegistry()
        registry.register("lookup", LookupEvaluator)
        assert registry.is_registered(LookupGoal)

    def test_register_callable(self) -> None:
        registry = EvaluatorRegistry()
        registry.register(LookupGoal, lambda goal: FixedAnswerEvaluator(goal, 1))
        evaluator = registry.create_evaluator(LookupGoal(CTX, "x"))
        assert isinstance(evaluator, FixedAnswerEvaluator)

    def test_reregister_replaces(self) -> None:
        registry = EvaluatorRegistry()
        registry.register(LookupGoal, NullGoalEvaluator)
        registry.register(LookupGoal, LookupEvaluator)
        assert isinstance(registry.create_evaluator(LookupGoal(CTX, "x")), LookupEvaluator)
        assert list(registry) == ["lookup"]

    def test_unregister(self) -> None:
        registry = EvaluatorRegistry()
        registry.register(LookupGoal, LookupEvaluator)
        registry.unregister(LookupGoal)
        registry.unregister(LookupGoal)
        assert not registry.is_registered(LookupGoal)

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="Unknown goal kind"):
            EvaluatorRegistry().register("no_such_kind", LookupEvaluator)

    def test_non_goal_kind_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="Goal subclass"):
            EvaluatorRegistry().register(int, LookupEvaluator)  # type: ignore[arg-type]

    def test_non_evaluator_class_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="GoalEvaluator subclass"):
            EvaluatorRegistry().register(LookupGoal, dict)  # type: ignore[arg-type]

    def test_abstract_evaluator_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="abstract"):
            EvaluatorRegistry().register(LookupGoal, GoalEvaluator)

    def test_non_callable_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="not callable"):
            EvaluatorRegistry().register(LookupGoal, "LookupEvaluator")  # type: ignore[arg-type]

    def test_wrong_arity_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="exactly one goal argument"):
            EvaluatorRegistry().register(LookupGoal, FixedAnswerEvaluator)

    def test_wrong_arity_callable_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="exactly one goal argument"):
            EvaluatorRegistry().register(
                LookupGoal,
                lambda goal, extra: LookupEvaluator(goal),  # type: ignore[arg-type,misc]
            )

    def test_wrong_return_annotation_rejected(self) -> None:
        def build(goal: Goal[Any]) -> str:
            return str(goal)

        with pytest.raises(RegistrationError, match="not a GoalEvaluator"):
            EvaluatorRegistry().register(LookupGoal, build)  # type: ignore[arg-type]

    def test_evaluator_return_annotation_accepted(self) -> None:
        def build(goal: Goal[Any]) -> LookupEvaluator:
            return LookupEvaluator(goal)  # type: ignore[arg-type]

        registry = EvaluatorRegistry()
        registry.register(LookupGoal, build)
        assert registry.is_registered(LookupGoal)

    def test_evaluator_for_other_kind_rejected(self) -> None:
        registry = EvaluatorRegistry()
        with pytest.raises(RegistrationError, match="handles MethodCallsGoal"):
            registry.register(FieldReferencesGoal, MethodCallsGoalEvaluator)
        assert not registry.is_registered(FieldReferencesGoal)

    def test_annotated_callable_for_other_kind_rejected(self) -> None:
        def build(goal: Goal[Any]) -> MethodCallsGoalEvaluator:
            return MethodCallsGoalEvaluator(goal)  # type: ignore[arg-type]

        with pytest.raises(RegistrationError, match="handles MethodCallsGoal"):
            EvaluatorRegistry().register(FieldReferencesGoal, build)

    def test_evaluator_for_goal_superclass_accepted(self) -> None:
        registry = EvaluatorRegistry()
        registry.register(ScopedCallsGoal, MethodCallsGoalEvaluator)
        registry.register(LookupGoal, NullGoalEvaluator)
        assert registry.kinds() == ["scoped_calls", "lookup"]

    def test_is_registered_tolerates_unknown_kind(self) -> None:
        assert not EvaluatorRegistry().is_registered("no_such_kind")


class TestGoalParameter:
    """Reading the goal class an evaluator is written for."""

    def test_direct_parameter(self) -> None:
        assert goal_parameter(LookupEvaluator) is LookupGoal

    def test_parameter_through_generic_base(self) -> None:
        assert goal_parameter(FieldReferencesGoalEvaluator) is FieldReferencesGoal
        assert goal_parameter(MethodCallsGoalEvaluator) is MethodCallsGoal

    def test_inherited_by_plain_subclass(self) -> None:
        class TracingLookupEvaluator(LookupEvaluator):
            pass

        assert goal_parameter(TracingLookupEvaluator) is LookupGoal

    def test_any_goal(self) -> None:
        assert goal_parameter(NullGoalEvaluator) is Goal


class TestCreateEvaluator:
    """Lookup order: user factory, then built-in table, then None."""

    def test_satisfies_factory_protocol(self) -> None:
        assert isinstance(EvaluatorRegistry(), EvaluatorFactory)

    def test_builtin_registration_used(self) -> None:
        registry = EvaluatorRegistry()
        registry.register(FieldReferencesGoal, FieldReferencesGoalEvaluator)
        registry.register(MethodCallsGoal, MethodCallsGoalEvaluator)
        evaluator = registry.create_evaluator(MethodCallsGoal(CTX, "run"))
        assert isinstance(evaluator, MethodCallsGoalEvaluator)
        assert evaluator.goal == MethodCallsGoal(CTX, "run")

    def test_fresh_evaluator_per_call(self) -> None:
        registry = EvaluatorRegistry()
        registry.register(LookupGoal, LookupEvaluator)
        goal = LookupGoal(CTX, "x")
        assert registry.create_evaluator(goal) is not registry.create_evaluator(goal)

    def test_unregistered_kind_is_none(self) -> None:
        assert EvaluatorRegistry().create_evaluator(LookupGoal(CTX, "x")) is None

    def test_user_factory_takes_precedence(self) -> None:
        factory = OverrideFactory()
        registry = EvaluatorRegistry(factory)
        registry.register(LookupGoal, LookupEvaluator)
        evaluator = registry.create_evaluator(LookupGoal(CTX, "special"))
        assert isinstance(evaluator, FixedAnswerEvaluator)
        assert factory.requests == [LookupGoal(CTX, "special")]

    def test_user_factory_none_falls_back(self) -> None:
        registry = EvaluatorRegistry(OverrideFactory())
        registry.register(LookupGoal, LookupEvaluator)
        evaluator = registry.create_evaluator(LookupGoal(CTX, "plain"))
        assert isinstance(evaluator, LookupEvaluator)

    def test_failing_user_factory_falls_back(
        self,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        class Broken:
            def create_evaluator(self, goal: Goal[Any]) -> GoalEvaluator[Any]:
                msg = "factory bug"
                raise RuntimeError(msg)

        registry = EvaluatorRegistry(Broken())
        registry.register(LookupGoal, LookupEvaluator)
        with caplog.at_level(logging.WARNING, logger="goalti.registry"):
            evaluator = registry.create_evaluator(LookupGoal(CTX, "x"))
        assert isinstance(evaluator, LookupEvaluator)
        assert "user factory" in caplog.text

    def test_failing_constructor_is_none(self, caplog: pytest.LogCaptureFixture) -> None:
        def explode(goal: Goal[Any]) -> GoalEvaluator[Any]:
            msg = "constructor bug"
            raise RuntimeError(msg)

        registry = EvaluatorRegistry()
        registry.register(LookupGoal, explode)
        with caplog.at_level(logging.WARNING, logger="goalti.registry"):
            assert registry.create_evaluator(LookupGoal(CTX, "x")) is None
        assert "constructor bug" in caplog.text

    def test_non_evaluator_product_is_none(
        self,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        registry = EvaluatorRegistry()
        registry.register(LookupGoal, lambda goal: "not an evaluator")  # type: ignore[arg-type,return-value]
        with caplog.at_level(logging.WARNING, logger="goalti.registry"):
            assert registry.create_evaluator(LookupGoal(CTX, "x")) is None
        assert "not a GoalEvaluator" in caplog.text
