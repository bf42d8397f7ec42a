"""goalTI - demand-driven type inference over a goal graph for Python 3.12+."""

from goalti.config import InferenceConfig
from goalti.context import (
    BasicContext,
    InMemorySourceIndex,
    InstanceContext,
    ItemReference,
    ReferenceKind,
    SourceIndex,
)
from goalti.engine import GoalEngine
from goalti.errors import ConfigError, InferenceError, RegistrationError
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
from goalti.goals import (
    AbstractTypeGoal,
    FieldReferencesGoal,
    Goal,
    GoalState,
    MethodCallsGoal,
    goal_class,
)
from goalti.inferencer import DefaultTypeInferencer, TypeInferencer
from goalti.pruning import AnyPruner, NeverPrune, Pruner, TimeLimitPruner
from goalti.registry import EvaluatorFactory, EvaluatorRegistry
from goalti.statistics import (
    EvaluationStatistics,
    RecordingListener,
    StatisticsCollector,
    StatisticsListener,
    StatisticsSink,
    add_statistics_listener,
    remove_statistics_listener,
    statistics_listeners,
)
from goalti.types import (
    UNKNOWN,
    AmbiguousType,
    ClassType,
    EvaluatedType,
    SimpleType,
    UnknownType,
    combine_types,
)

__all__ = [
    "UNKNOWN",
    # Goals
    "AbstractTypeGoal",
    "AmbiguousType",
    "AnyPruner",
    # Contexts
    "BasicContext",
    "ClassType",
    "ConfigError",
    # Entry points
    "DefaultTypeInferencer",
    # Evaluators
    "Done",
    "EvaluatedType",
    "EvaluationStatistics",
    "EvaluatorFactory",
    "EvaluatorRegistry",
    "FieldReferencesGoal",
    "FieldReferencesGoalEvaluator",
    "FixedAnswerEvaluator",
    "Goal",
    "GoalEngine",
    "GoalEvaluator",
    "GoalState",
    "InMemorySourceIndex",
    "InferenceConfig",
    "InferenceError",
    "InstanceContext",
    "ItemReference",
    "MethodCallsGoal",
    "MethodCallsGoalEvaluator",
    "NeedMore",
    "NeverPrune",
    "NullGoalEvaluator",
    "Outcome",
    # Pruning
    "Pruner",
    "RecordingListener",
    "ReferenceKind",
    "RegistrationError",
    # Types
    "SimpleType",
    "SourceIndex",
    # Statistics
    "StatisticsCollector",
    "StatisticsListener",
    "StatisticsSink",
    "TimeLimitPruner",
    "TypeInferencer",
    "UnknownType",
    "add_statistics_listener",
    "combine_types",
    "goal_class",
    "remove_statistics_listener",
    "statistics_listeners",
]
