"""
FORMCOACH Evaluation Service - Feedback Dispatcher

Turns failing rules and completed reps into catalog messages and hands them
to a feedback sink. One dispatcher per session.

Rate limiting:
- per message code: the same message is not repeated within the cooldown
- per frame: only the most urgent failing rule is spoken in real time
- optionally, a minimum gap between any two messages
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from core.config import settings
from core.notifications import FeedbackSink, get_default_sink

from .messages import FeedbackMessage, MessageCatalog, Outcome, get_message_catalog
from .profiles import ExerciseProfile
from .rules import FeedbackPriority, RuleResult
from .schemas import FeedbackEvent, RepResult

logger = logging.getLogger(__name__)


class FeedbackDispatcher:
    """
    Rate-limited feedback emission for one session.

    Features:
    - Real-time message for the most urgent rule failing on the current frame
    - Per-rep summary: failing rules, or a good-form message
    - Cooldown keyed by message code, measured on frame timestamps
    - Sink failures are logged and counted, never raised
    """

    def __init__(
        self,
        profile: ExerciseProfile,
        sink: Optional[FeedbackSink] = None,
        catalog: Optional[MessageCatalog] = None,
        cooldown_seconds: Optional[float] = None,
        realtime: Optional[bool] = None,
        min_interval_seconds: Optional[float] = None
    ):
        """
        Args:
            profile: exercise profile of the session
            sink: delivery target (shared mock-mode sink if None)
            catalog: message catalog (global if None)
            cooldown_seconds: settings.FEEDBACK_COOLDOWN_SECONDS if None
            realtime: settings.REALTIME_FEEDBACK if None
            min_interval_seconds: settings.FEEDBACK_MIN_INTERVAL_SECONDS if None
        """
        self.exercise_id = profile.exercise_id
        self.sink = sink or get_default_sink()
        self.catalog = catalog or get_message_catalog()

        if cooldown_seconds is None:
            cooldown_seconds = settings.FEEDBACK_COOLDOWN_SECONDS
        if min_interval_seconds is None:
            min_interval_seconds = settings.FEEDBACK_MIN_INTERVAL_SECONDS
        self.cooldown_ms = cooldown_seconds * 1000
        self.min_interval_ms = min_interval_seconds * 1000
        self.realtime = settings.REALTIME_FEEDBACK if realtime is None else realtime

        self._rule_order = {spec.rule_id: i for i, spec in enumerate(profile.rules)}
        self._priorities = {spec.rule_id: spec.priority for spec in profile.rules}
        self._fail_codes = {spec.rule_id: spec.message_code for spec in profile.rules}

        # message_code -> timestamp (ms) of the last emission attempt
        self.last_feedback: Dict[str, float] = {}
        self._last_emission: Optional[float] = None

        self._sent_count = 0
        self._suppressed_count = 0
        self._failed_count = 0

    # ═══════════════════════════════════════════════════════════════════════════
    # ENTRY POINTS
    # ═══════════════════════════════════════════════════════════════════════════

    def on_frame(self, rule_results: Sequence[RuleResult], timestamp: float) -> List[FeedbackEvent]:
        """
        Emit the FAIL message of the most urgent rule failing on this frame.

        Rules are tried by priority, then profile order; the first one not
        rate-limited is spoken and the rest count as suppressed.

        Returns:
            Events actually delivered (at most one)
        """
        if not self.realtime:
            return []

        failing = sorted((r.rule_id for r in rule_results if not r.passed), key=self._urgency)
        chosen = None
        for rule_id in failing:
            message = self._fail_message(rule_id)
            if chosen is None and message is not None and not self._rate_limited(message.code, timestamp):
                chosen = message
            else:
                self._suppressed_count += 1

        if chosen is None:
            return []
        event = self._emit(chosen, Outcome.FAIL, timestamp)
        return [event] if event else []

    def on_rep_completed(self, rep: RepResult, timestamp: float) -> List[FeedbackEvent]:
        """
        Emit the rep summary: one FAIL message per failing rule, or the
        exercise's good-form message when nothing failed.

        Returns:
            Events actually delivered
        """
        if not rep.failing_rules:
            event = self._emit(self.catalog.good_form(self.exercise_id), Outcome.PASS, timestamp)
            return [event] if event else []

        delivered = []
        for rule_id in sorted(rep.failing_rules, key=self._rank):
            event = self._emit(self._fail_message(rule_id), Outcome.FAIL, timestamp)
            if event:
                delivered.append(event)
        return delivered

    # ═══════════════════════════════════════════════════════════════════════════
    # EMISSION
    # ═══════════════════════════════════════════════════════════════════════════

    def _rank(self, rule_id: str):
        return (self._rule_order.get(rule_id, len(self._rule_order)), rule_id)

    def _urgency(self, rule_id: str):
        return (self._priorities.get(rule_id, FeedbackPriority.LOW),) + self._rank(rule_id)

    def _fail_message(self, rule_id: str) -> Optional[FeedbackMessage]:
        code = self._fail_codes.get(rule_id)
        if code is not None:
            return self.catalog.get_by_code(code)
        return self.catalog.lookup(self.exercise_id, rule_id, Outcome.FAIL)

    def in_cooldown(self, message_code: str, timestamp: float) -> bool:
        last = self.last_feedback.get(message_code)
        return last is not None and timestamp - last < self.cooldown_ms

    def _rate_limited(self, message_code: str, timestamp: float) -> bool:
        if self.in_cooldown(message_code, timestamp):
            return True
        return self._last_emission is not None and timestamp - self._last_emission < self.min_interval_ms

    def _emit(
        self,
        message: Optional[FeedbackMessage],
        outcome: Outcome,
        timestamp: float
    ) -> Optional[FeedbackEvent]:
        if message is None:
            logger.debug(f"No {outcome.value} message for {self.exercise_id}")
            return None

        if self._rate_limited(message.code, timestamp):
            self._suppressed_count += 1
            return None

        # A failed attempt still starts the cooldown
        self.last_feedback[message.code] = timestamp
        self._last_emission = timestamp

        event = FeedbackEvent(
            message_code=message.code,
            exercise_id=self.exercise_id,
            timestamp=timestamp,
            text=message.text,
            outcome=outcome.value,
        )

        try:
            self.sink.send(event)
        except Exception as e:
            logger.warning(f"Feedback dispatch failed for {message.code}: {e}")
            self._failed_count += 1
            return None

        self._sent_count += 1
        return event

    # ═══════════════════════════════════════════════════════════════════════════
    # STATS
    # ═══════════════════════════════════════════════════════════════════════════

    @property
    def sent_count(self) -> int:
        return self._sent_count

    @property
    def suppressed_count(self) -> int:
        return self._suppressed_count

    @property
    def failed_count(self) -> int:
        return self._failed_count

    def get_stats(self) -> Dict[str, Any]:
        """Get dispatch statistics."""
        return {
            "exercise_id": self.exercise_id,
            "sent_count": self._sent_count,
            "suppressed_count": self._suppressed_count,
            "failed_count": self._failed_count,
            "cooldown_seconds": self.cooldown_ms / 1000,
            "min_interval_seconds": self.min_interval_ms / 1000,
            "realtime": self.realtime,
        }
