"""Evaluator registry: maps goal kinds to evaluator constructors."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import (
    TYPE_CHECKING,
    Any,
    Protocol,
    get_args,
    get_origin,
    runtime_checkable,
)

from goalti.errors import RegistrationError
from goalti.evaluators import GoalEvaluator
from goalti.goals import Goal

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

type EvaluatorConstructor = Callable[[Goal[Any]], GoalEvaluator[Any]]
type GoalKind = str | type[Goal[Any]]


@runtime_checkable
class EvaluatorFactory(Protocol):
    """Builds the evaluator for a goal, or None if it cannot."""

    def create_evaluator(self, goal: Goal[Any]) -> GoalEvaluator[Any] | None:
        """Return a fresh evaluator bound to ``goal``, or None."""
        ...


class EvaluatorRegistry:
    """Kind-to-constructor table with an optional user factory in front.

    Lookup order for ``create_evaluator``:
    1. the user factory, if it returns an evaluator
    2. the constructor registered for ``goal.kind``
    3. None, which the engine treats as "no result" for that goal

    Registration is expected to finish before sessions start reading the
    table; it is not guarded against concurrent lookups.
    """

    def __init__(self, user_factory: EvaluatorFactory | None = None) -> None:
        self.user_factory = user_factory
        self._constructors: dict[str, EvaluatorConstructor] = {}

    def __contains__(self, kind: GoalKind) -> bool:
        return self.is_registered(kind)

    def __iter__(self) -> Iterator[str]:
        return iter(self._constructors)

    def register(self, kind: GoalKind, constructor: EvaluatorConstructor) -> None:
        """Register the evaluator constructor for a goal kind.

        Re-registering a kind replaces its constructor.

        Args:
            kind: A Goal subclass or a registered kind name
            constructor: A GoalEvaluator subclass, or a callable taking the
                goal and returning an evaluator

        Raises:
            RegistrationError: If the kind is unknown or the constructor
                cannot produce evaluators for a single goal argument

        """
        kind_name = _kind_name(kind)
        _check_constructor(kind_name, constructor)
        self._constructors[kind_name] = constructor

    def unregister(self, kind: GoalKind) -> None:
        """Remove the constructor for a kind. Unknown kinds are ignored."""
        self._constructors.pop(_kind_name(kind), None)

    def is_registered(self, kind: GoalKind) -> bool:
        """Return True if a constructor is registered for the kind."""
        try:
            return _kind_name(kind) in self._constructors
        except RegistrationError:
            return False

    def kinds(self) -> list[str]:
        """Registered kind names in registration order."""
        return list(self._constructors)

    def create_evaluator(self, goal: Goal[Any]) -> GoalEvaluator[Any] | None:
        """Build the evaluator for a goal.

        Failures inside the user factory or a constructor are logged and
        treated as "no evaluator"; they are never raised.
        """
        if self.user_factory is not None:
            evaluator = _build(self.user_factory.create_evaluator, goal, "user factory")
            if evaluator is not None:
                return evaluator

        constructor = self._constructors.get(goal.kind)
        if constructor is None:
            logger.debug("No evaluator registered for '%s': %r", goal.kind, goal)
            return None
        return _build(constructor, goal, f"constructor for '{goal.kind}'")


def _kind_name(kind: GoalKind) -> str:
    if isinstance(kind, str):
        name = kind
    elif isinstance(kind, type) and issubclass(kind, Goal) and "kind" in vars(kind):
        name = kind.kind
    else:
        msg = f"Expected a Goal subclass or kind name, got {kind!r}"
        raise RegistrationError(msg)

    if name not in Goal.registry:
        msg = f"Unknown goal kind '{name}'. Registered kinds: {sorted(Goal.registry)}"
        raise RegistrationError(msg)
    return name


def _check_constructor(kind: str, constructor: object) -> None:
    if not callable(constructor):
        msg = f"Constructor for '{kind}' is not callable: {constructor!r}"
        raise RegistrationError(msg)

    if isinstance(constructor, type):
        if not issubclass(constructor, GoalEvaluator):
            msg = (
                f"Constructor for '{kind}' must be a GoalEvaluator subclass, "
                f"got {constructor.__name__}"
            )
            raise RegistrationError(msg)
        if inspect.isabstract(constructor):
            msg = f"Evaluator {constructor.__name__} for '{kind}' is abstract"
            raise RegistrationError(msg)
        _check_goal_parameter(kind, constructor)
    else:
        returns = _return_annotation(constructor)
        if isinstance(returns, type) and returns is not inspect.Signature.empty:
            if not issubclass(returns, GoalEvaluator):
                msg = (
                    f"Constructor for '{kind}' is annotated to return "
                    f"{returns.__name__}, not a GoalEvaluator"
                )
                raise RegistrationError(msg)
            _check_goal_parameter(kind, returns)

    try:
        inspect.signature(constructor).bind(None)
    except TypeError:
        msg = f"Constructor for '{kind}' must accept exactly one goal argument"
        raise RegistrationError(msg) from None
    except ValueError:
        # Builtins without an introspectable signature are taken on trust.
        pass


def _check_goal_parameter(kind: str, evaluator: type[GoalEvaluator[Any]]) -> None:
    handled = goal_parameter(evaluator)
    goal_cls = Goal.registry[kind]
    if handled is not None and not issubclass(goal_cls, handled):
        msg = (
            f"Evaluator {evaluator.__name__} handles {handled.__name__} goals, "
            f"not '{kind}' ({goal_cls.__name__})"
        )
        raise RegistrationError(msg)


def goal_parameter(evaluator: type[GoalEvaluator[Any]]) -> type[Goal[Any]] | None:
    """Return the goal class an evaluator class is parameterized with.

    Walks the evaluator's generic bases, so ``class E(GoalEvaluator[G])``
    and subclasses of E all give G. Returns None when the parameter is
    still a type variable.

    Example:
        goal_parameter(FieldReferencesGoalEvaluator) is FieldReferencesGoal

    """
    for klass in evaluator.__mro__:
        for base in vars(klass).get("__orig_bases__", ()):
            origin = get_origin(base)
            if not (isinstance(origin, type) and issubclass(origin, GoalEvaluator)):
                continue
            args = get_args(base)
            if not args:
                continue
            target = get_origin(args[0]) or args[0]
            if isinstance(target, type) and issubclass(target, Goal):
                return target
    return None


def _return_annotation(constructor: Callable[..., object]) -> object:
    try:
        return inspect.signature(constructor, eval_str=True).return_annotation
    except (NameError, SyntaxError, TypeError, ValueError):
        # Unresolvable string annotations are not checked.
        return inspect.Signature.empty


def _build(
    constructor: Callable[[Goal[Any]], object],
    goal: Goal[Any],
    source: str,
) -> GoalEvaluator[Any] | None:
    try:
        evaluator = constructor(goal)
    except Exception:
        logger.warning("Evaluator %s failed for %r", source, goal, exc_info=True)
        return None

    if evaluator is None or isinstance(evaluator, GoalEvaluator):
        return evaluator
    logger.warning(
        "Evaluator %s returned %r, which is not a GoalEvaluator",
        source,
        evaluator,
    )
    return None
