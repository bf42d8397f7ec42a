"""Evaluation statistics: lifecycle events fanned out to listeners.

Listeners are registered process-wide and receive events from every
session in the process, from whichever thread runs it. They persist across
sessions; callers must remove what they add. Events never influence results.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from goalti.goals import GoalState

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from goalti.evaluators import GoalEvaluator
    from goalti.goals import Goal

logger = logging.getLogger(__name__)


class StatisticsListener:
    """Receives engine lifecycle events. All methods are no-ops by default.

    Elapsed times are in seconds.
    """

    def evaluation_started(self, root: Goal[Any]) -> None:
        """A session started resolving ``root``."""

    def goal_evaluator_assigned(
        self,
        goal: Goal[Any],
        evaluator: GoalEvaluator[Any],
    ) -> None:
        """An evaluator was built for ``goal``."""

    def evaluator_initialized(
        self,
        evaluator: GoalEvaluator[Any],
        subgoals: Sequence[Goal[Any]],
        elapsed: float,
    ) -> None:
        """``init`` returned ``subgoals`` after ``elapsed`` seconds."""

    def evaluator_received_result(
        self,
        evaluator: GoalEvaluator[Any],
        finished: Goal[Any] | None,
        new_subgoals: Sequence[Goal[Any]] | None,
        elapsed: float,
    ) -> None:
        """``resume`` consumed the result of ``finished``.

        Sent once per finished subgoal, in request order, after the
        ``resume`` call. ``elapsed`` is how long that subgoal took to
        resolve. Only the last event of a batch carries ``new_subgoals``;
        it is None on the others and when the evaluator answered Done.
        A resume that consumed nothing is reported once with ``finished``
        None.
        """

    def evaluator_produced_result(
        self,
        evaluator: GoalEvaluator[Any],
        result: Any,
        elapsed: float,
    ) -> None:
        """The evaluator finished with ``result``.

        ``elapsed`` covers the evaluator's whole life, subgoals included.
        """

    def goal_state_changed(
        self,
        goal: Goal[Any],
        state: GoalState,
        old_state: GoalState | None,
    ) -> None:
        """``goal`` moved from ``old_state`` (None when new) to ``state``."""


_lock = threading.Lock()
_listeners: dict[StatisticsListener, None] = {}


def add_statistics_listener(listener: StatisticsListener) -> None:
    """Register a listener process-wide. Adding it twice is a no-op."""
    with _lock:
        _listeners.setdefault(listener, None)


def remove_statistics_listener(listener: StatisticsListener) -> None:
    """Unregister a listener. Removing a non-member is a no-op."""
    with _lock:
        _listeners.pop(listener, None)


def statistics_listeners() -> tuple[StatisticsListener, ...]:
    """Snapshot of the registered listeners in registration order."""
    with _lock:
        return tuple(_listeners)


class StatisticsSink:
    """Fans each event out to the global listeners plus session extras.

    Each listener call is isolated: an exception is logged and the
    remaining listeners are still notified.
    """

    def __init__(self, *extra: StatisticsListener) -> None:
        self.extra = extra

    def _targets(self) -> tuple[StatisticsListener, ...]:
        registered = statistics_listeners()
        return registered + tuple(e for e in self.extra if e not in registered)

    def _fan_out(self, event: str, *args: Any) -> None:
        for listener in self._targets():
            try:
                getattr(listener, event)(*args)
            except Exception:
                logger.exception("Statistics listener %r failed on %s", listener, event)

    def evaluation_started(self, root: Goal[Any]) -> None:
        self._fan_out("evaluation_started", root)

    def goal_evaluator_assigned(
        self,
        goal: Goal[Any],
        evaluator: GoalEvaluator[Any],
    ) -> None:
        self._fan_out("goal_evaluator_assigned", goal, evaluator)

    def evaluator_initialized(
        self,
        evaluator: GoalEvaluator[Any],
        subgoals: Sequence[Goal[Any]],
        elapsed: float,
    ) -> None:
        self._fan_out("evaluator_initialized", evaluator, subgoals, elapsed)

    def evaluator_received_result(
        self,
        evaluator: GoalEvaluator[Any],
        finished: Goal[Any] | None,
        new_subgoals: Sequence[Goal[Any]] | None,
        elapsed: float,
    ) -> None:
        self._fan_out(
            "evaluator_received_result",
            evaluator,
            finished,
            new_subgoals,
            elapsed,
        )

    def evaluator_produced_result(
        self,
        evaluator: GoalEvaluator[Any],
        result: Any,
        elapsed: float,
    ) -> None:
        self._fan_out("evaluator_produced_result", evaluator, result, elapsed)

    def goal_state_changed(
        self,
        goal: Goal[Any],
        state: GoalState,
        old_state: GoalState | None,
    ) -> None:
        self._fan_out("goal_state_changed", goal, state, old_state)


@dataclass(frozen=True)
class EvaluationStatistics:
    """Point-in-time totals gathered by a StatisticsCollector.

    Attributes:
        sessions: Sessions started
        assignments: Evaluators built
        results: Evaluators that produced a result
        absent_results: Produced results that were None
        cutoffs: Goals finished without a produced result (pruned, too
            deep, or their evaluator raised)
        evaluator_time: Seconds from assignment to produced result, per
            goal kind, subgoals included

    """

    sessions: int = 0
    assignments: int = 0
    results: int = 0
    absent_results: int = 0
    cutoffs: int = 0
    evaluator_time: Mapping[str, float] = field(default_factory=dict)


class StatisticsCollector(StatisticsListener):
    """Aggregates counters across sessions. Safe to share between threads.

    A session runs on a single thread and reports a produced result right
    before the goal's Done transition, so results are matched to goals per
    thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = defaultdict(int)
        self._time: dict[str, float] = defaultdict(float)
        self._produced: set[tuple[int, Goal[Any]]] = set()

    def evaluation_started(self, root: Goal[Any]) -> None:
        with self._lock:
            self._counts["sessions"] += 1

    def goal_evaluator_assigned(
        self,
        goal: Goal[Any],
        evaluator: GoalEvaluator[Any],
    ) -> None:
        with self._lock:
            self._counts["assignments"] += 1

    def evaluator_produced_result(
        self,
        evaluator: GoalEvaluator[Any],
        result: Any,
        elapsed: float,
    ) -> None:
        key = (threading.get_ident(), evaluator.goal)
        with self._lock:
            self._counts["results"] += 1
            if result is None:
                self._counts["absent_results"] += 1
            self._time[evaluator.goal.kind] += elapsed
            self._produced.add(key)

    def goal_state_changed(
        self,
        goal: Goal[Any],
        state: GoalState,
        old_state: GoalState | None,
    ) -> None:
        if state is not GoalState.DONE:
            return
        key = (threading.get_ident(), goal)
        with self._lock:
            if key in self._produced:
                self._produced.discard(key)
            else:
                self._counts["cutoffs"] += 1

    def snapshot(self) -> EvaluationStatistics:
        """Return the totals gathered so far."""
        with self._lock:
            return EvaluationStatistics(
                sessions=self._counts["sessions"],
                assignments=self._counts["assignments"],
                results=self._counts["results"],
                absent_results=self._counts["absent_results"],
                cutoffs=self._counts["cutoffs"],
                evaluator_time=dict(self._time),
            )

    def reset(self) -> None:
        """Forget everything gathered so far."""
        with self._lock:
            self._counts.clear()
            self._time.clear()
            self._produced.clear()


class RecordingListener(StatisticsListener):
    """Keeps every event as ``(name, args)`` in arrival order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []

    def names(self) -> list[str]:
        """Event names in arrival order."""
        return [name for name, _ in self.events]

    def of(self, name: str) -> list[tuple[Any, ...]]:
        """Arguments of every event called ``name``."""
        return [args for event, args in self.events if event == name]

    def evaluation_started(self, root: Goal[Any]) -> None:
        self.events.append(("evaluation_started", (root,)))

    def goal_evaluator_assigned(
        self,
        goal: Goal[Any],
        evaluator: GoalEvaluator[Any],
    ) -> None:
        self.events.append(("goal_evaluator_assigned", (goal, evaluator)))

    def evaluator_initialized(
        self,
        evaluator: GoalEvaluator[Any],
        subgoals: Sequence[Goal[Any]],
        elapsed: float,
    ) -> None:
        self.events.append(("evaluator_initialized", (evaluator, subgoals, elapsed)))

    def evaluator_received_result(
        self,
        evaluator: GoalEvaluator[Any],
        finished: Goal[Any] | None,
        new_subgoals: Sequence[Goal[Any]] | None,
        elapsed: float,
    ) -> None:
        self.events.append(
            ("evaluator_received_result", (evaluator, finished, new_subgoals, elapsed)),
        )

    def evaluator_produced_result(
        self,
        evaluator: GoalEvaluator[Any],
        result: Any,
        elapsed: float,
    ) -> None:
        self.events.append(("evaluator_produced_result", (evaluator, result, elapsed)))

    def goal_state_changed(
        self,
        goal: Goal[Any],
        state: GoalState,
        old_state: GoalState | None,
    ) -> None:
        self.events.append(("goal_state_changed", (goal, state, old_state)))
