"""
Expression Types Example
========================

A tiny expression language whose types are inferred on demand, demonstrating:
- Defining a type goal and its evaluator
- Subgoals, memoization and cycles within one session
- Time limits and statistics listeners
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from goalti import (
    AbstractTypeGoal,
    BasicContext,
    DefaultTypeInferencer,
    Done,
    Goal,
    GoalEvaluator,
    Outcome,
    SimpleType,
    StatisticsCollector,
    combine_types,
)


# ============================================================================
# The expression language
# ============================================================================

@dataclass(frozen=True)
class Literal:
    """A literal of a known type."""
    type_name: str


@dataclass(frozen=True)
class Choice:
    """``a if cond else b``: either of the named expressions."""
    options: tuple[str, ...]


type Expression = Literal | Choice


# ============================================================================
# Goal and evaluator
# ============================================================================

class ExpressionTypeGoal(AbstractTypeGoal):
    """Type of the named expression."""
    node_id: str


class ExpressionTypeEvaluator(GoalEvaluator[ExpressionTypeGoal]):
    """Infers expression types from a program mapping names to expressions."""

    def __init__(self, goal: ExpressionTypeGoal, program: dict[str, Expression]):
        super().__init__(goal)
        self.expression = program.get(goal.node_id)

    def init(self) -> list[Goal[Any]]:
        match self.expression:
            case Choice(options=options):
                return [ExpressionTypeGoal(self.goal.context, o) for o in options]
            case _:
                return []

    def resume(self, results: Mapping[Goal[Any], Any]) -> Outcome:
        match self.expression:
            case Literal(type_name=name):
                return Done(SimpleType(name))
            case Choice():
                # A branch that loops back to us contributes nothing
                return Done(combine_types(results.values()))
            case _:
                return Done(None)


# ============================================================================
# Usage
# ============================================================================

def main():
    program: dict[str, Expression] = {
        "one": Literal("int"),
        "pi": Literal("float"),
        "x": Choice(("one", "y")),
        "y": Choice(("x", "pi")),
        "label": Literal("str"),
        "any": Choice(("x", "label", "one")),
    }

    inferencer = DefaultTypeInferencer()
    inferencer.register_evaluator(
        ExpressionTypeGoal,
        lambda goal: ExpressionTypeEvaluator(goal, program),
    )

    collector = StatisticsCollector()
    inferencer.add_statistics_listener(collector)

    ctx = BasicContext(module="example.py")
    for node_id in ["one", "x", "y", "any", "missing"]:
        t = inferencer.evaluate_type(ExpressionTypeGoal(ctx, node_id), 500)
        shown = t.type_name() if t is not None else "<not inferred>"
        print(f"{node_id:>8}: {shown}")

    print()
    stats = collector.snapshot()
    print(f"Sessions: {stats.sessions}")
    print(f"Evaluators assigned: {stats.assignments}")
    print(f"Results without a type: {stats.absent_results}")

    # A zero budget prunes the root before any evaluator runs
    print()
    print("With a 0 ms budget:", inferencer.evaluate_type(ExpressionTypeGoal(ctx, "x"), 0))

    inferencer.remove_statistics_listener(collector)


if __name__ == "__main__":
    main()
