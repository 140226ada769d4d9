"""
FORMCOACH Evaluation Service Models

Landmark geometry, data-driven exercise rules, repetition counting and
rate-limited feedback for real-time exercise form evaluation.
"""

from .landmarks import (
    Landmark,
    LandmarkIndex,
    Frame,
    LANDMARK_COUNT,
)

from .geometry import (
    angle,
    distance,
    midpoint,
    is_visible,
    all_visible,
)

from .phases import PhaseState, PhaseThresholds

from .rules import (
    FeedbackPriority,
    RuleOutcome,
    RuleResult,
    RuleSpec,
    evaluate_rules,
)

from .messages import (
    CATALOG_VERSION,
    FeedbackMessage,
    MessageCatalog,
    Outcome,
    get_message_catalog,
)

from .profiles import (
    ExerciseProfile,
    ExerciseType,
    ProfileRegistry,
    get_profile,
    get_profile_registry,
)

from .schemas import (
    RepResult,
    FeedbackEvent,
    FrameTelemetry,
    FrameEvaluation,
    FormIssue,
    SessionResult,
)

from .rep_state_machine import RepStateMachine, RepTally
from .feedback import FeedbackDispatcher

from .session import (
    EvaluationSession,
    SessionEvaluator,
    get_session_evaluator,
)

__all__ = [
    # Landmarks & geometry
    "Landmark",
    "LandmarkIndex",
    "Frame",
    "LANDMARK_COUNT",
    "angle",
    "distance",
    "midpoint",
    "is_visible",
    "all_visible",
    # Rules & profiles
    "PhaseState",
    "PhaseThresholds",
    "FeedbackPriority",
    "RuleOutcome",
    "RuleResult",
    "RuleSpec",
    "evaluate_rules",
    "ExerciseProfile",
    "ExerciseType",
    "ProfileRegistry",
    "get_profile",
    "get_profile_registry",
    # Messages & feedback
    "CATALOG_VERSION",
    "FeedbackMessage",
    "MessageCatalog",
    "Outcome",
    "get_message_catalog",
    "FeedbackDispatcher",
    # Results
    "RepResult",
    "FeedbackEvent",
    "FrameTelemetry",
    "FrameEvaluation",
    "FormIssue",
    "SessionResult",
    # Session
    "RepStateMachine",
    "RepTally",
    "EvaluationSession",
    "SessionEvaluator",
    "get_session_evaluator",
]
