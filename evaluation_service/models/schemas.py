"""
FORMCOACH Evaluation Service - Outbound Models

Immutable records handed to callers and external sinks. model_dump() gives
plain dicts; model_dump(mode="json") gives JSON-ready values.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import FrozenSet, Optional, Tuple

from .phases import PhaseState
from .rules import RuleResult


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# ============================================
# Repetitions and Feedback
# ============================================

class RepResult(FrozenModel):
    """A completed repetition."""
    rep_index: int = Field(..., ge=1)  # 1-based
    score: int = Field(..., ge=0, le=100)
    failing_rules: FrozenSet[str] = frozenset()
    frame_count: int = 0
    started_at: float = 0.0  # ms, frame timestamps
    completed_at: float = 0.0


class FeedbackEvent(FrozenModel):
    message_code: str
    exercise_id: str
    timestamp: float  # ms
    text: str
    outcome: str  # "pass" | "fail"


# ============================================
# Per-frame Output
# ============================================

class FrameTelemetry(FrozenModel):
    phase: PhaseState
    current_rep_count: int = 0
    current_partial_score_estimate: Optional[int] = None


class FrameEvaluation(FrozenModel):
    """Result of ingesting one frame."""
    accepted: bool = True  # False once the session is finalized
    usable: bool = False  # passed the visibility gate
    rule_results: Tuple[RuleResult, ...] = ()
    rep_result: Optional[RepResult] = None
    telemetry: FrameTelemetry
    primary_angle: Optional[float] = None


# ============================================
# Session Summary
# ============================================

class FormIssue(FrozenModel):
    rule_id: str
    occurrences: int
    severity: str  # high, medium, low
    message_code: Optional[str] = None


class SessionResult(FrozenModel):
    session_id: str
    exercise_id: str
    rep_count: int
    rep_results: Tuple[RepResult, ...] = ()
    average_score: int = 0
    duration_ms: float = 0.0
    best_score: int = 0
    worst_score: int = 0
    consistency: int = 0
    trend: str = "stable"
    grade: str = "F"
    form_issues: Tuple[FormIssue, ...] = ()
    catalog_version: str
    completed_at: str
