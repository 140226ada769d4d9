"""
FORMCOACH Evaluation Service - Session Evaluator

Single entry point for hosts: create a session for an exercise, push frames
in arrival order, finalize to get the immutable session result.

Each session exclusively owns its phase, rep tally, completed reps and
feedback cooldown state. Sessions are fully independent.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import uuid

from core.config import settings
from core.exceptions import ConfigurationError
from core.notifications import FeedbackSink
from shared.utils import get_now_iso, log_execution_time, resolve_log_level, setup_logger

from .feedback import FeedbackDispatcher
from .geometry import all_visible, angle
from .landmarks import Frame
from .messages import MessageCatalog, get_message_catalog
from .phases import PhaseState
from .profiles import ExerciseProfile, ExerciseType, ProfileRegistry, get_profile_registry
from .rep_state_machine import RepStateMachine
from .rules import evaluate_rules
from .schemas import FrameEvaluation, FrameTelemetry, RepResult, SessionResult
from .scoring import analyze_form_issues, generate_session_stats

logger = setup_logger(__name__, resolve_log_level(settings.LOG_LEVEL))


@dataclass
class EvaluationSession:
    """Evaluation state of one exercise session."""
    session_id: str
    profile: ExerciseProfile
    state_machine: RepStateMachine
    dispatcher: FeedbackDispatcher
    visibility_threshold: float
    created_at: str = field(default_factory=get_now_iso)

    # Frame bookkeeping (timestamps in ms)
    first_timestamp: Optional[float] = None
    last_timestamp: Optional[float] = None
    frames_received: int = 0
    frames_skipped: int = 0

    finalized: bool = False
    result: Optional[SessionResult] = None

    @property
    def exercise_id(self) -> str:
        return self.profile.exercise_id

    @property
    def phase(self) -> PhaseState:
        return self.state_machine.phase

    @property
    def rep_count(self) -> int:
        return self.state_machine.rep_count

    @property
    def completed_reps(self) -> List[RepResult]:
        return list(self.state_machine.completed_reps)

    @property
    def duration_ms(self) -> float:
        if self.first_timestamp is None or self.last_timestamp is None:
            return 0.0
        return self.last_timestamp - self.first_timestamp

    def telemetry(self) -> FrameTelemetry:
        return FrameTelemetry(
            phase=self.phase,
            current_rep_count=self.rep_count,
            current_partial_score_estimate=self.state_machine.partial_score(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "session_id": self.session_id,
            "exercise_id": self.exercise_id,
            "phase": self.phase.value,
            "rep_count": self.rep_count,
            "frames_received": self.frames_received,
            "frames_skipped": self.frames_skipped,
            "duration_ms": self.duration_ms,
            "finalized": self.finalized,
            "created_at": self.created_at,
            "feedback": self.dispatcher.get_stats(),
        }


class SessionEvaluator:
    """
    Manages evaluation sessions.

    Features:
    - Visibility gating of incoming frames
    - Rule evaluation and repetition counting
    - Rate-limited real-time and per-rep feedback
    - Session summary with scoring statistics
    """

    def __init__(
        self,
        registry: Optional[ProfileRegistry] = None,
        catalog: Optional[MessageCatalog] = None
    ):
        """
        Initialize session evaluator.

        Args:
            registry: ProfileRegistry instance (uses global if None)
            catalog: MessageCatalog instance (uses global if None)
        """
        self.registry = registry or get_profile_registry()
        self.catalog = catalog or get_message_catalog()
        self.active_sessions: Dict[str, EvaluationSession] = {}

    def create_session(
        self,
        exercise_id: Union[str, ExerciseType],
        session_id: Optional[str] = None,
        sink: Optional[FeedbackSink] = None
    ) -> EvaluationSession:
        """
        Create a new evaluation session.

        Args:
            exercise_id: Exercise to evaluate
            session_id: Caller-chosen id (generated if None)
            sink: Feedback sink (shared mock-mode sink if None)

        Returns:
            New EvaluationSession

        Raises:
            ConfigurationError: for an unknown exercise; no session is created
        """
        try:
            profile = self.registry.get_profile(exercise_id)
        except ConfigurationError as e:
            logger.error(f"Cannot create session: {e}")
            raise

        session_id = session_id or str(uuid.uuid4())[:8]
        if session_id in self.active_sessions:
            raise ValueError(f"Session {session_id} already exists")

        if profile.visibility_threshold is not None:
            visibility_threshold = profile.visibility_threshold
        else:
            visibility_threshold = settings.VISIBILITY_THRESHOLD

        session = EvaluationSession(
            session_id=session_id,
            profile=profile,
            state_machine=RepStateMachine(profile.thresholds),
            dispatcher=FeedbackDispatcher(profile, sink=sink, catalog=self.catalog),
            visibility_threshold=visibility_threshold,
        )
        self.active_sessions[session_id] = session

        logger.info(f"Session {session_id} created for {profile.exercise_id}")
        return session

    @log_execution_time
    def ingest_frame(self, session: EvaluationSession, frame: Frame) -> FrameEvaluation:
        """
        Process one frame.

        Args:
            session: Session returned by create_session
            frame: Landmarks of one captured frame

        Returns:
            FrameEvaluation; inert (usable=False) when a required landmark is
            not visible, not accepted once the session is finalized
        """
        if session.finalized:
            logger.warning(f"Frame ignored: session {session.session_id} is finalized")
            return FrameEvaluation(accepted=False, telemetry=session.telemetry())

        session.frames_received += 1
        if session.first_timestamp is None:
            session.first_timestamp = frame.timestamp
        session.last_timestamp = frame.timestamp

        profile = session.profile
        if not all_visible(frame, profile.required_landmarks, session.visibility_threshold):
            session.frames_skipped += 1
            logger.debug(f"Session {session.session_id}: occluded frame at {frame.timestamp}ms skipped")
            return FrameEvaluation(usable=False, telemetry=session.telemetry())

        a, b, c = profile.primary_angle
        primary_angle = angle(frame[a], frame[b], frame[c])

        machine = session.state_machine
        rule_results = evaluate_rules(profile.rules, frame, machine.next_phase(primary_angle))
        rep = machine.update(primary_angle, rule_results, frame.timestamp)

        session.dispatcher.on_frame(rule_results, frame.timestamp)
        if rep is not None:
            session.dispatcher.on_rep_completed(rep, frame.timestamp)

        return FrameEvaluation(
            usable=True,
            rule_results=tuple(rule_results),
            rep_result=rep,
            telemetry=session.telemetry(),
            primary_angle=primary_angle,
        )

    def finalize_session(self, session: EvaluationSession) -> SessionResult:
        """
        Finish a session and build its summary. Calling again returns the
        same result.

        Returns:
            Immutable SessionResult
        """
        if session.result is not None:
            return session.result

        reps = session.completed_reps
        stats = generate_session_stats([rep.score for rep in reps])
        message_codes = {spec.rule_id: spec.message_code for spec in session.profile.rules}

        result = SessionResult(
            session_id=session.session_id,
            exercise_id=session.exercise_id,
            rep_count=len(reps),
            rep_results=tuple(reps),
            average_score=stats["average_score"],
            duration_ms=session.duration_ms,
            best_score=stats["best_score"],
            worst_score=stats["worst_score"],
            consistency=stats["consistency"],
            trend=stats["trend"],
            grade=stats["grade"],
            form_issues=tuple(analyze_form_issues(reps, message_codes=message_codes)),
            catalog_version=self.catalog.version,
            completed_at=get_now_iso(),
        )

        session.finalized = True
        session.result = result

        logger.info(
            f"Session {session.session_id} finalized: {result.rep_count} reps, "
            f"average {result.average_score} ({result.grade})"
        )
        return result

    def get_session(self, session_id: str) -> Optional[EvaluationSession]:
        """Get session by ID."""
        return self.active_sessions.get(session_id)

    def get_session_status(self, session_id: str) -> Dict[str, Any]:
        """Get current session status."""
        session = self.active_sessions.get(session_id)
        if not session:
            return {"error": "Session not found"}

        return session.to_dict()

    def cleanup_session(self, session_id: str):
        """Remove session from active sessions."""
        if session_id in self.active_sessions:
            del self.active_sessions[session_id]


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_evaluator_instance: Optional[SessionEvaluator] = None


def get_session_evaluator() -> SessionEvaluator:
    """Get or create the global session evaluator instance."""
    global _evaluator_instance
    if _evaluator_instance is None:
        _evaluator_instance = SessionEvaluator()
    return _evaluator_instance
