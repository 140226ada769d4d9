"""
FORMCOACH Evaluation Service - Repetition State Machine

Counts repetitions from the primary angle with hysteresis:

    TOP -> DESCENDING      angle leaves the rest position by more than the margin
    DESCENDING -> BOTTOM   angle reaches the bottom threshold
    DESCENDING -> TOP      angle returns to the top before bottoming (abandoned)
    BOTTOM -> ASCENDING    angle moves back past bottom + margin
    ASCENDING -> TOP       angle reaches the top threshold (rep completed)
    ASCENDING -> BOTTOM    angle falls back to the bottom (re-descent)

Comparisons are mirrored for exercises whose angle increases during the
working phase. At most one transition happens per frame. A frame's
rules are judged in the phase it leads to (see next_phase).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

from core.config import settings

from .phases import PhaseState, PhaseThresholds
from .rules import RuleResult
from .schemas import RepResult
from .scoring import round_score

logger = logging.getLogger(__name__)


@dataclass
class RepTally:
    """Rule results accumulated over one repetition in progress."""
    started_at: float = 0.0
    frame_count: int = 0
    rule_pass_counts: Dict[str, int] = field(default_factory=dict)
    rule_eval_counts: Dict[str, int] = field(default_factory=dict)
    frame_score_sum: float = 0.0
    scored_frame_count: int = 0

    def add_frame(self, rule_results: Sequence[RuleResult]):
        """Fold one frame in. Frames without applicable rules count but are not scored."""
        self.frame_count += 1
        if not rule_results:
            return

        passed = 0
        for result in rule_results:
            self.rule_eval_counts[result.rule_id] = self.rule_eval_counts.get(result.rule_id, 0) + 1
            if result.passed:
                self.rule_pass_counts[result.rule_id] = self.rule_pass_counts.get(result.rule_id, 0) + 1
                passed += 1

        self.frame_score_sum += passed / len(rule_results)
        self.scored_frame_count += 1

    def score(self) -> int:
        """Mean per-frame pass rate as 0-100. 0 when no frame was scored."""
        if self.scored_frame_count == 0:
            return 0
        return round_score(100 * self.frame_score_sum / self.scored_frame_count)

    def pass_rate(self, rule_id: str) -> Optional[float]:
        evaluated = self.rule_eval_counts.get(rule_id, 0)
        if evaluated == 0:
            return None
        return self.rule_pass_counts.get(rule_id, 0) / evaluated

    def failing_rules(self, pass_threshold: float) -> FrozenSet[str]:
        return frozenset(
            rule_id for rule_id in self.rule_eval_counts
            if self.pass_rate(rule_id) < pass_threshold
        )


class RepStateMachine:
    """
    Phase tracking and rep scoring for one session.

    Usage:
        machine = RepStateMachine(profile.thresholds)
        rep = machine.update(angle, rule_results, frame.timestamp)
    """

    def __init__(self, thresholds: PhaseThresholds, pass_threshold: Optional[float] = None):
        """
        Args:
            thresholds: primary-angle thresholds of the exercise
            pass_threshold: per-rule pass rate below which a rule fails a rep
                (settings.RULE_PASS_THRESHOLD if None)
        """
        self.thresholds = thresholds
        self.pass_threshold = settings.RULE_PASS_THRESHOLD if pass_threshold is None else pass_threshold

        self.phase = PhaseState.TOP
        self.tally: Optional[RepTally] = None
        self.completed_reps: List[RepResult] = []

    @property
    def rep_count(self) -> int:
        return len(self.completed_reps)

    def next_phase(self, primary_angle: float) -> PhaseState:
        """Phase the machine will be in after this angle; rules are judged in it."""
        return self._transition(primary_angle) or self.phase

    def update(
        self,
        primary_angle: float,
        rule_results: Sequence[RuleResult],
        timestamp: float = 0.0
    ) -> Optional[RepResult]:
        """
        Advance the machine by one usable frame.

        Args:
            primary_angle: primary angle of the frame (degrees)
            rule_results: rules evaluated for ``next_phase(primary_angle)``
            timestamp: frame timestamp (ms)

        Returns:
            The RepResult if this frame completed a repetition, else None
        """
        next_phase = self._transition(primary_angle)
        if next_phase == PhaseState.DESCENDING and self.phase == PhaseState.TOP:
            self.tally = RepTally(started_at=timestamp)

        # A frame belongs to the rep when it starts or ends outside TOP
        if self.tally is not None and (self.phase != PhaseState.TOP or next_phase is not None):
            self.tally.add_frame(rule_results)

        if next_phase is None:
            return None

        rep = None
        if next_phase == PhaseState.TOP and self.phase == PhaseState.DESCENDING:
            logger.debug(f"Partial rep abandoned at {primary_angle:.1f}°")
            self.tally = None
        elif next_phase == PhaseState.TOP and self.phase == PhaseState.ASCENDING:
            rep = self._complete_rep(timestamp)

        logger.debug(f"Phase {self.phase.value} -> {next_phase.value} at {primary_angle:.1f}°")
        self.phase = next_phase
        return rep

    def _transition(self, primary_angle: float) -> Optional[PhaseState]:
        # Work in a frame where the working phase always decreases the value
        sign = self.thresholds.direction
        value = sign * primary_angle
        top = sign * self.thresholds.top_angle
        bottom = sign * self.thresholds.bottom_angle
        margin = self.thresholds.hysteresis_margin

        if self.phase == PhaseState.TOP:
            if value < top - margin:
                return PhaseState.DESCENDING
        elif self.phase == PhaseState.DESCENDING:
            if value <= bottom:
                return PhaseState.BOTTOM
            if value >= top:
                return PhaseState.TOP
        elif self.phase == PhaseState.BOTTOM:
            if value > bottom + margin:
                return PhaseState.ASCENDING
        elif self.phase == PhaseState.ASCENDING:
            if value >= top:
                return PhaseState.TOP
            if value <= bottom:
                return PhaseState.BOTTOM
        return None

    def _complete_rep(self, timestamp: float) -> RepResult:
        tally = self.tally or RepTally(started_at=timestamp)
        rep = RepResult(
            rep_index=self.rep_count + 1,
            score=tally.score(),
            failing_rules=tally.failing_rules(self.pass_threshold),
            frame_count=tally.frame_count,
            started_at=tally.started_at,
            completed_at=timestamp,
        )
        self.completed_reps.append(rep)
        self.tally = None

        logger.info(f"Rep {rep.rep_index} completed: score {rep.score}")
        return rep

    def partial_score(self) -> Optional[int]:
        """Live score of the rep in progress, None outside a rep."""
        if self.tally is None or self.tally.scored_frame_count == 0:
            return None
        return self.tally.score()

    def reset(self):
        """Drop the rep in progress and return to TOP. Completed reps are kept."""
        if self.tally is not None:
            logger.debug("Rep in progress discarded by reset")
        self.phase = PhaseState.TOP
        self.tally = None
