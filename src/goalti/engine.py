"""Goal engine: demand-driven resolution of goals through their evaluators.

Each ``evaluate_goal`` call is one session. A session resolves the root goal
depth-first: it builds the goal's evaluator, resolves the subgoals the
evaluator asks for (left to right, recursively, through the same session),
hands their results back, and repeats until the evaluator is done.

Within a session:
- every goal is evaluated at most once; later requests get the cached result
- a goal requested while it is still being resolved further up the current
  path closes a cycle, and that request alone gets None
- once the pruner says stop, goals still in progress finish with None

Nothing raised by evaluators, factories or listeners escapes a session; the
affected goal finishes with None instead.
"""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from goalti.config import InferenceConfig
from goalti.evaluators import Done, GoalEvaluator, NeedMore, NullGoalEvaluator
from goalti.goals import GoalState
from goalti.pruning import NeverPrune
from goalti.statistics import StatisticsSink

if TYPE_CHECKING:
    from goalti.goals import Goal
    from goalti.pruning import Pruner
    from goalti.registry import EvaluatorFactory

logger = logging.getLogger(__name__)

# Interpreter frames used per level of the goal path (resolve and run) and
# reserved for the caller, listener fan-out and logging at the deepest level.
_FRAMES_PER_GOAL = 3
_STACK_HEADROOM = 200


def stack_depth_limit() -> int:
    """Deepest goal path the interpreter's recursion limit leaves room for."""
    return max(1, (sys.getrecursionlimit() - _STACK_HEADROOM) // _FRAMES_PER_GOAL)


@dataclass
class _CacheEntry:
    """What a session knows about one goal."""

    state: GoalState
    evaluator: GoalEvaluator[Any] | None = None
    result: Any = None


class _Session:
    """Cache and active path of a single ``evaluate_goal`` call."""

    def __init__(
        self,
        factory: EvaluatorFactory,
        pruner: Pruner,
        sink: StatisticsSink,
        max_depth: int,
    ) -> None:
        self.factory = factory
        self.pruner = pruner
        self.sink = sink
        self.max_depth = max_depth
        self.cache: dict[Goal[Any], _CacheEntry] = {}
        self.path: list[Goal[Any]] = []
        self.active: set[Goal[Any]] = set()
        self.started = time.perf_counter()

    def elapsed(self) -> float:
        return time.perf_counter() - self.started

    def should_stop(self) -> bool:
        try:
            return self.pruner.should_stop(self.elapsed())
        except Exception:
            logger.exception("Pruner %r failed, stopping expansion", self.pruner)
            return True

    def resolve(self, goal: Goal[Any]) -> Any:
        entry = self.cache.get(goal)
        if entry is not None and entry.state is GoalState.DONE:
            return entry.result

        if goal in self.active:
            logger.debug("Cycle closed at %r", goal)
            return None

        entry = _CacheEntry(GoalState.PENDING)
        self.cache[goal] = entry
        self.sink.goal_state_changed(goal, GoalState.PENDING, None)

        if self.should_stop():
            logger.debug("Pruned %r after %.3fs", goal, self.elapsed())
            return self.finish(goal, entry, None)

        if len(self.path) >= self.max_depth:
            logger.debug("Goal path deeper than %d at %r", self.max_depth, goal)
            return self.finish(goal, entry, None)

        self.path.append(goal)
        self.active.add(goal)
        try:
            return self.run(goal, entry)
        finally:
            self.path.pop()
            self.active.discard(goal)

    def run(self, goal: Goal[Any], entry: _CacheEntry) -> Any:
        evaluator = self.create_evaluator(goal)
        entry.evaluator = evaluator
        self.set_state(goal, entry, GoalState.ASSIGNED)
        self.sink.goal_evaluator_assigned(goal, evaluator)
        assigned_at = time.perf_counter()

        started = time.perf_counter()
        try:
            subgoals = tuple(evaluator.init())
        except Exception:
            logger.exception("Evaluator %r failed in init", evaluator)
            return self.finish(goal, entry, None)
        self.sink.evaluator_initialized(
            evaluator,
            subgoals,
            time.perf_counter() - started,
        )

        while True:
            if self.should_stop():
                logger.debug("Pruned %r after %.3fs", goal, self.elapsed())
                return self.finish(goal, entry, None)

            if subgoals and entry.state is GoalState.ASSIGNED:
                self.set_state(goal, entry, GoalState.AWAITING_SUBGOALS)

            results: dict[Goal[Any], Any] = {}
            timings: list[float] = []
            for subgoal in subgoals:
                started = time.perf_counter()
                results[subgoal] = self.resolve(subgoal)
                timings.append(time.perf_counter() - started)

            if subgoals and self.should_stop():
                logger.debug("Pruned %r after %.3fs", goal, self.elapsed())
                return self.finish(goal, entry, None)

            try:
                outcome = evaluator.resume(MappingProxyType(results))
            except Exception:
                logger.exception("Evaluator %r failed in resume", evaluator)
                return self.finish(goal, entry, None)

            match outcome:
                case Done(result=result):
                    self.report_received(evaluator, subgoals, timings, None)
                    self.sink.evaluator_produced_result(
                        evaluator,
                        result,
                        time.perf_counter() - assigned_at,
                    )
                    return self.finish(goal, entry, result)
                case NeedMore(goals=more):
                    requested = tuple(more)
                    self.report_received(evaluator, subgoals, timings, requested)
                    subgoals = requested
                case _:
                    logger.warning(
                        "Evaluator %r returned %r instead of NeedMore or Done",
                        evaluator,
                        outcome,
                    )
                    return self.finish(goal, entry, None)

    def report_received(
        self,
        evaluator: GoalEvaluator[Any],
        finished: tuple[Goal[Any], ...],
        timings: list[float],
        requested: tuple[Goal[Any], ...] | None,
    ) -> None:
        """Emit one received-result event per finished subgoal, in order.

        Only the last event of a batch carries the newly requested subgoals.
        A resume that consumed no subgoals is reported once, with no
        finished goal.
        """
        pairs: list[tuple[Goal[Any] | None, float]] = list(
            zip(finished, timings, strict=True),
        )
        if not pairs:
            pairs = [(None, 0.0)]
        last = len(pairs) - 1
        for i, (subgoal, elapsed) in enumerate(pairs):
            self.sink.evaluator_received_result(
                evaluator,
                subgoal,
                requested if i == last else None,
                elapsed,
            )

    def create_evaluator(self, goal: Goal[Any]) -> GoalEvaluator[Any]:
        try:
            evaluator = self.factory.create_evaluator(goal)
        except Exception:
            logger.exception("Evaluator factory failed for %r", goal)
            evaluator = None
        if evaluator is None:
            logger.debug("No evaluator for %r, using NullGoalEvaluator", goal)
            return NullGoalEvaluator(goal)
        return evaluator

    def set_state(self, goal: Goal[Any], entry: _CacheEntry, state: GoalState) -> None:
        old_state = entry.state
        entry.state = state
        self.sink.goal_state_changed(goal, state, old_state)

    def finish(self, goal: Goal[Any], entry: _CacheEntry, result: Any) -> Any:
        entry.result = result
        self.set_state(goal, entry, GoalState.DONE)
        return result


class GoalEngine:
    """Runs evaluation sessions against an evaluator factory.

    The engine holds no per-session state, so one engine can serve
    sessions on several threads at once.
    """

    def __init__(
        self,
        factory: EvaluatorFactory,
        config: InferenceConfig | None = None,
    ) -> None:
        self.factory = factory
        self.config = config or InferenceConfig()

    def evaluate_goal(
        self,
        root: Goal[Any],
        pruner: Pruner | None = None,
        sink: StatisticsSink | None = None,
    ) -> Any:
        """Resolve a root goal in a fresh session.

        Args:
            root: The goal to resolve
            pruner: Stop strategy for this session; None never stops
            sink: Statistics fan-out for this session; None notifies only
                the process-wide listeners

        The configured ``max_depth`` is lowered when the interpreter's
        recursion limit leaves less room. A session that still runs out of
        stack ends with None.

        Returns:
            The root goal's result, or None if it has no evaluator, was
            pruned, or its evaluator gave no answer

        """
        sink = sink if sink is not None else StatisticsSink()
        max_depth = min(self.config.max_depth, stack_depth_limit())
        if max_depth < self.config.max_depth:
            logger.debug(
                "max_depth %d lowered to %d to fit the recursion limit",
                self.config.max_depth,
                max_depth,
            )
        session = _Session(
            self.factory,
            pruner if pruner is not None else NeverPrune(),
            sink,
            max_depth,
        )
        sink.evaluation_started(root)
        try:
            result = session.resolve(root)
        except RecursionError:
            logger.exception("Goal graph of %r exhausted the interpreter stack", root)
            return None
        logger.debug(
            "Evaluated %r in %.3fs (%d goals)",
            root,
            session.elapsed(),
            len(session.cache),
        )
        return result
