"""
FORMCOACH Evaluation Service - Rule Library

Exercise-agnostic form checks built on the geometry kernel. Every rule is a
pure function of landmark positions plus a tolerance and returns a
RuleOutcome; none of them reads session state.

Rules are only invoked on frames that passed the visibility gate, so every
landmark they receive is present.
"""

import numpy as np
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .geometry import Point, angle, as_point, midpoint
from .landmarks import Frame, LandmarkIndex
from .phases import PhaseState


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class FeedbackPriority(IntEnum):
    """Urgency of a rule's failure message. Lower value is spoken first."""
    CRITICAL = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3


@dataclass(frozen=True)
class RuleOutcome:
    """Raw result of a rule function."""
    passed: bool
    measured_value: float


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule on one frame."""
    rule_id: str
    passed: bool
    measured_value: float


@dataclass(frozen=True)
class RuleSpec:
    """
    Binds a rule function to the landmarks and tolerance a profile uses.

    Attributes:
        rule_id: stable identifier, unique within a profile
        rule: function from this module
        landmarks: indices passed positionally to ``rule``
        message_code: code of the message emitted when the rule fails
        tolerance: passed as ``tolerance=`` when set
        options: extra keyword arguments (angle bounds, axis, ...)
        phases: phases in which the rule applies; empty means all phases
        priority: urgency of the failure message in real-time feedback
    """
    rule_id: str
    rule: Callable[..., RuleOutcome]
    landmarks: Tuple[LandmarkIndex, ...]
    message_code: str
    tolerance: Optional[float] = None
    options: Dict[str, Any] = field(default_factory=dict)
    phases: FrozenSet[PhaseState] = frozenset()
    priority: FeedbackPriority = FeedbackPriority.MEDIUM

    def applies_to(self, phase: PhaseState) -> bool:
        return not self.phases or phase in self.phases

    def evaluate(self, frame: Frame) -> RuleResult:
        points = [frame[index] for index in self.landmarks]
        kwargs = dict(self.options)
        if self.tolerance is not None:
            kwargs["tolerance"] = self.tolerance
        outcome = self.rule(*points, **kwargs)
        return RuleResult(
            rule_id=self.rule_id,
            passed=bool(outcome.passed),
            measured_value=float(outcome.measured_value),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# RULES
# ═══════════════════════════════════════════════════════════════════════════════

def is_angle_in_range(value: float, min_angle: float, max_angle: float) -> bool:
    """Inclusive range check."""
    return min_angle <= value <= max_angle


def joint_angle_in_range(a: Point, b: Point, c: Point, min_angle: float, max_angle: float) -> RuleOutcome:
    """Angle at b must lie within [min_angle, max_angle]."""
    value = angle(a, b, c)
    return RuleOutcome(is_angle_in_range(value, min_angle, max_angle), value)


def joint_offset(
    joint: Point,
    reference: Point,
    tolerance: float = 0.05,
    axis: int = 0,
    absolute: bool = False
) -> RuleOutcome:
    """
    Displacement of a joint relative to a reference joint along one axis.

    With the defaults this is the knee-over-toe check: the knee may not pass
    the toe by more than ``tolerance`` on the horizontal axis. ``absolute``
    compares the magnitude instead (e.g. elbow level with the shoulder).
    """
    offset = float(as_point(joint)[axis] - as_point(reference)[axis])
    if absolute:
        offset = abs(offset)
    return RuleOutcome(offset <= tolerance, offset)


def joint_stability(joint: Point, anchor_a: Point, anchor_b: Point, tolerance: float = 0.05) -> RuleOutcome:
    """
    Vertical displacement of a joint from the midpoint of two anchors.

    Detects swinging, e.g. the elbow drifting away from the torso during a curl.
    """
    displacement = float(abs(as_point(joint)[1] - midpoint(anchor_a, anchor_b)[1]))
    return RuleOutcome(displacement <= tolerance, displacement)


def symmetry(
    left_point: Point,
    right_point: Point,
    tolerance: float = 0.05,
    mirror_axis_x: Optional[float] = None
) -> RuleOutcome:
    """
    Difference between mirrored left/right landmarks.

    Without ``mirror_axis_x`` the horizontal mirroring is taken as exact and
    only the vertical difference counts. With an axis, the left point is
    reflected across x = mirror_axis_x and the full 2-D distance is used.
    """
    left = as_point(left_point)[:2]
    right = as_point(right_point)[:2]

    if mirror_axis_x is None:
        difference = float(abs(left[1] - right[1]))
    else:
        mirrored = np.array([2 * mirror_axis_x - left[0], left[1]])
        difference = float(np.linalg.norm(right - mirrored))

    return RuleOutcome(difference <= tolerance, difference)


def body_line_straightness(shoulder: Point, hip: Point, ankle: Point, tolerance: float = 10.0) -> RuleOutcome:
    """Shoulder-hip-ankle angle must be within ``tolerance`` degrees of straight."""
    value = angle(shoulder, hip, ankle)
    return RuleOutcome(value >= 180.0 - tolerance, value)


def back_straightness(shoulder: Point, hip: Point, knee: Point, tolerance: float = 30.0) -> RuleOutcome:
    """Shoulder-hip-knee angle must be within ``tolerance`` degrees of straight."""
    value = angle(shoulder, hip, knee)
    return RuleOutcome(value >= 180.0 - tolerance, value)


# ═══════════════════════════════════════════════════════════════════════════════
# EVALUATION LOOP
# ═══════════════════════════════════════════════════════════════════════════════

def evaluate_rules(rules: Sequence[RuleSpec], frame: Frame, phase: PhaseState) -> List[RuleResult]:
    """Run every rule applicable to ``phase`` against a gated frame, in order."""
    return [spec.evaluate(frame) for spec in rules if spec.applies_to(phase)]
