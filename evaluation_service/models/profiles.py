"""
FORMCOACH Evaluation Service - Exercise Profile Registry

Static, data-driven exercise definitions. Each profile names the landmarks
it needs, the primary angle driving repetition phases, the phase thresholds
and an ordered list of rules; there is no per-exercise code.

Threshold and tolerance defaults can be tuned through settings
(PHASE_THRESHOLD_OVERRIDES, RULE_TOLERANCE_OVERRIDES). Overrides are applied
once when the registry is built.
"""

import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from core.config import settings
from core.exceptions import ConfigurationError

from .landmarks import LandmarkIndex
from .messages import MessageCatalog, Outcome, build_message_code, get_message_catalog
from .phases import PhaseState, PhaseThresholds
from .rules import (
    FeedbackPriority,
    RuleSpec,
    back_straightness,
    body_line_straightness,
    joint_angle_in_range,
    joint_offset,
    joint_stability,
    symmetry,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class ExerciseType(Enum):
    """Supported exercise types."""
    SQUAT = "squat"
    PUSHUP = "pushup"
    ARM_CURL = "armcurl"
    SIDE_RAISE = "sideraise"
    SHOULDER_PRESS = "shoulderpress"


@dataclass(frozen=True)
class ExerciseProfile:
    """
    Static definition of one exercise.

    Attributes:
        exercise_id: registry key
        display_name: human-readable name
        required_landmarks: landmarks that must pass the visibility gate
        primary_angle: (a, vertex, c) indices of the angle driving phases
        thresholds: phase thresholds on the primary angle
        rules: ordered rule specs evaluated on every usable frame
        visibility_threshold: per-profile gate; settings default when None
        recommended_camera: "side" or "front"
    """
    exercise_id: str
    display_name: str
    required_landmarks: Tuple[LandmarkIndex, ...]
    primary_angle: Tuple[LandmarkIndex, LandmarkIndex, LandmarkIndex]
    thresholds: PhaseThresholds
    rules: Tuple[RuleSpec, ...]
    visibility_threshold: Optional[float] = None
    recommended_camera: str = "side"

    @property
    def rule_ids(self) -> List[str]:
        return [spec.rule_id for spec in self.rules]

    def get_rule(self, rule_id: str) -> Optional[RuleSpec]:
        for spec in self.rules:
            if spec.rule_id == rule_id:
                return spec
        return None


def _fail_code(exercise_id: str, rule_id: str) -> str:
    return build_message_code(exercise_id, rule_id, Outcome.FAIL)


# ═══════════════════════════════════════════════════════════════════════════════
# DEFAULT PROFILES
# ═══════════════════════════════════════════════════════════════════════════════

SQUAT_PROFILE = ExerciseProfile(
    exercise_id="squat",
    display_name="Squat",
    required_landmarks=(
        LandmarkIndex.LEFT_SHOULDER,
        LandmarkIndex.LEFT_HIP,
        LandmarkIndex.LEFT_KNEE,
        LandmarkIndex.LEFT_ANKLE,
        LandmarkIndex.LEFT_FOOT_INDEX,
    ),
    primary_angle=(LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_KNEE, LandmarkIndex.LEFT_ANKLE),
    thresholds=PhaseThresholds(top_angle=160, bottom_angle=110, hysteresis_margin=20),
    rules=(
        RuleSpec(
            rule_id="knee_angle",
            rule=joint_angle_in_range,
            landmarks=(LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_KNEE, LandmarkIndex.LEFT_ANKLE),
            options={"min_angle": 90, "max_angle": 110},
            phases=frozenset({PhaseState.BOTTOM}),
            message_code=_fail_code("squat", "knee_angle"),
        ),
        RuleSpec(
            rule_id="knee_over_toe",
            rule=joint_offset,
            landmarks=(LandmarkIndex.LEFT_KNEE, LandmarkIndex.LEFT_FOOT_INDEX),
            tolerance=0.05,
            options={"axis": 0},
            message_code=_fail_code("squat", "knee_over_toe"),
            priority=FeedbackPriority.HIGH,
        ),
        RuleSpec(
            rule_id="back_straight",
            rule=back_straightness,
            landmarks=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_KNEE),
            tolerance=30,
            message_code=_fail_code("squat", "back_straight"),
            priority=FeedbackPriority.HIGH,
        ),
    ),
    recommended_camera="side",
)

PUSHUP_PROFILE = ExerciseProfile(
    exercise_id="pushup",
    display_name="Push-up",
    required_landmarks=(
        LandmarkIndex.LEFT_SHOULDER,
        LandmarkIndex.LEFT_ELBOW,
        LandmarkIndex.LEFT_WRIST,
        LandmarkIndex.LEFT_HIP,
        LandmarkIndex.LEFT_ANKLE,
    ),
    primary_angle=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_WRIST),
    thresholds=PhaseThresholds(top_angle=160, bottom_angle=100, hysteresis_margin=20),
    rules=(
        RuleSpec(
            rule_id="elbow_angle",
            rule=joint_angle_in_range,
            landmarks=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_WRIST),
            options={"min_angle": 80, "max_angle": 100},
            phases=frozenset({PhaseState.BOTTOM}),
            message_code=_fail_code("pushup", "elbow_angle"),
        ),
        RuleSpec(
            rule_id="body_line",
            rule=body_line_straightness,
            landmarks=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_ANKLE),
            tolerance=10,
            message_code=_fail_code("pushup", "body_line"),
            priority=FeedbackPriority.HIGH,
        ),
    ),
    recommended_camera="side",
)

ARM_CURL_PROFILE = ExerciseProfile(
    exercise_id="armcurl",
    display_name="Arm Curl",
    required_landmarks=(
        LandmarkIndex.LEFT_SHOULDER,
        LandmarkIndex.LEFT_ELBOW,
        LandmarkIndex.LEFT_WRIST,
        LandmarkIndex.LEFT_HIP,
    ),
    primary_angle=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_WRIST),
    thresholds=PhaseThresholds(top_angle=160, bottom_angle=50, hysteresis_margin=20),
    rules=(
        RuleSpec(
            rule_id="elbow_angle",
            rule=joint_angle_in_range,
            landmarks=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_WRIST),
            options={"min_angle": 30, "max_angle": 50},
            phases=frozenset({PhaseState.BOTTOM}),
            message_code=_fail_code("armcurl", "elbow_angle"),
        ),
        RuleSpec(
            rule_id="elbow_fixed",
            rule=joint_stability,
            landmarks=(LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_HIP),
            tolerance=0.05,
            message_code=_fail_code("armcurl", "elbow_fixed"),
            priority=FeedbackPriority.HIGH,
        ),
    ),
    recommended_camera="side",
)

# The primary angle opens during the working phase: top < bottom
SIDE_RAISE_PROFILE = ExerciseProfile(
    exercise_id="sideraise",
    display_name="Side Raise",
    required_landmarks=(
        LandmarkIndex.LEFT_SHOULDER,
        LandmarkIndex.RIGHT_SHOULDER,
        LandmarkIndex.LEFT_ELBOW,
        LandmarkIndex.RIGHT_ELBOW,
        LandmarkIndex.LEFT_WRIST,
        LandmarkIndex.RIGHT_WRIST,
        LandmarkIndex.LEFT_HIP,
    ),
    primary_angle=(LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW),
    thresholds=PhaseThresholds(top_angle=30, bottom_angle=80, hysteresis_margin=10),
    rules=(
        RuleSpec(
            rule_id="arm_elevation",
            rule=joint_offset,
            landmarks=(LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_SHOULDER),
            tolerance=0.05,
            options={"axis": 1, "absolute": True},
            phases=frozenset({PhaseState.BOTTOM}),
            message_code=_fail_code("sideraise", "arm_elevation"),
        ),
        RuleSpec(
            rule_id="symmetry",
            rule=symmetry,
            landmarks=(LandmarkIndex.LEFT_ELBOW, LandmarkIndex.RIGHT_ELBOW),
            tolerance=0.1,
            message_code=_fail_code("sideraise", "symmetry"),
        ),
    ),
    recommended_camera="front",
)

SHOULDER_PRESS_PROFILE = ExerciseProfile(
    exercise_id="shoulderpress",
    display_name="Shoulder Press",
    required_landmarks=(
        LandmarkIndex.NOSE,
        LandmarkIndex.LEFT_SHOULDER,
        LandmarkIndex.LEFT_ELBOW,
        LandmarkIndex.LEFT_WRIST,
    ),
    primary_angle=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_WRIST),
    thresholds=PhaseThresholds(top_angle=90, bottom_angle=160, hysteresis_margin=30),
    rules=(
        RuleSpec(
            rule_id="elbow_extension",
            rule=joint_angle_in_range,
            landmarks=(LandmarkIndex.LEFT_SHOULDER, LandmarkIndex.LEFT_ELBOW, LandmarkIndex.LEFT_WRIST),
            options={"min_angle": 160, "max_angle": 180},
            phases=frozenset({PhaseState.BOTTOM}),
            message_code=_fail_code("shoulderpress", "elbow_extension"),
        ),
        RuleSpec(
            rule_id="wrist_above_head",
            rule=joint_offset,
            landmarks=(LandmarkIndex.LEFT_WRIST, LandmarkIndex.NOSE),
            tolerance=0.0,
            options={"axis": 1},
            phases=frozenset({PhaseState.BOTTOM}),
            message_code=_fail_code("shoulderpress", "wrist_above_head"),
        ),
    ),
    recommended_camera="front",
)

DEFAULT_PROFILES: Tuple[ExerciseProfile, ...] = (
    SQUAT_PROFILE,
    PUSHUP_PROFILE,
    ARM_CURL_PROFILE,
    SIDE_RAISE_PROFILE,
    SHOULDER_PRESS_PROFILE,
)


# ═══════════════════════════════════════════════════════════════════════════════
# VALIDATION AND OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════════

_THRESHOLD_FIELDS = {f.name for f in fields(PhaseThresholds)}


def validate_profile(profile: ExerciseProfile, catalog: MessageCatalog) -> None:
    """
    Check a profile's internal consistency.

    Raises:
        ConfigurationError: on the first problem found
    """
    exercise_id = profile.exercise_id
    required = set(profile.required_landmarks)

    def fail(message: str):
        raise ConfigurationError(f"Profile {exercise_id}: {message}", exercise_id=exercise_id)

    if len(profile.primary_angle) != 3:
        fail("primary angle needs exactly three landmarks")
    if not set(profile.primary_angle) <= required:
        fail("primary angle uses landmarks outside the required set")

    thresholds = profile.thresholds
    if thresholds.hysteresis_margin < 0:
        fail("hysteresis margin must be non-negative")
    if thresholds.top_angle == thresholds.bottom_angle:
        fail("top and bottom angles must differ")

    seen = set()
    for spec in profile.rules:
        if spec.rule_id in seen:
            fail(f"duplicate rule id {spec.rule_id}")
        seen.add(spec.rule_id)
        if not set(spec.landmarks) <= required:
            fail(f"rule {spec.rule_id} uses landmarks outside the required set")
        if spec.tolerance is not None and spec.tolerance < 0:
            fail(f"rule {spec.rule_id} has a negative tolerance")
        if not catalog.has_code(spec.message_code):
            fail(f"rule {spec.rule_id} message code {spec.message_code} is not in the catalog")

    if catalog.good_form(exercise_id) is None:
        fail("no good-form message in the catalog")


def apply_overrides(
    profile: ExerciseProfile,
    threshold_overrides: Optional[Mapping[str, float]] = None,
    tolerance_overrides: Optional[Mapping[str, float]] = None
) -> ExerciseProfile:
    """
    Return a copy of the profile with tuned thresholds and rule tolerances.

    Args:
        profile: base profile
        threshold_overrides: PhaseThresholds field name -> value
        tolerance_overrides: rule_id -> tolerance

    Raises:
        ConfigurationError: for an unknown threshold field or rule id
    """
    thresholds = profile.thresholds
    if threshold_overrides:
        unknown = set(threshold_overrides) - _THRESHOLD_FIELDS
        if unknown:
            raise ConfigurationError(
                f"Unknown threshold fields for {profile.exercise_id}: {sorted(unknown)}",
                exercise_id=profile.exercise_id,
            )
        thresholds = replace(
            thresholds,
            **{name: float(value) for name, value in threshold_overrides.items()}
        )

    rules = profile.rules
    if tolerance_overrides:
        unknown = set(tolerance_overrides) - set(profile.rule_ids)
        if unknown:
            raise ConfigurationError(
                f"Unknown rules for {profile.exercise_id}: {sorted(unknown)}",
                exercise_id=profile.exercise_id,
            )
        rules = tuple(
            replace(spec, tolerance=float(tolerance_overrides[spec.rule_id]))
            if spec.rule_id in tolerance_overrides else spec
            for spec in rules
        )

    return replace(profile, thresholds=thresholds, rules=rules)


# ═══════════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════════

class ProfileRegistry:
    """
    Immutable lookup of exercise profiles, built and validated once.

    Features:
    - Settings-driven threshold and tolerance tuning
    - Cross-check of rule message codes against the message catalog
    """

    def __init__(
        self,
        profiles: Optional[Iterable[ExerciseProfile]] = None,
        catalog: Optional[MessageCatalog] = None,
        threshold_overrides: Optional[Mapping[str, Mapping[str, float]]] = None,
        tolerance_overrides: Optional[Mapping[str, Mapping[str, float]]] = None
    ):
        """
        Build the registry.

        Args:
            profiles: base profiles (DEFAULT_PROFILES if None)
            catalog: message catalog (global if None)
            threshold_overrides: exercise_id -> threshold overrides
                (settings.PHASE_THRESHOLD_OVERRIDES if None)
            tolerance_overrides: exercise_id -> rule tolerance overrides
                (settings.RULE_TOLERANCE_OVERRIDES if None)

        Raises:
            ConfigurationError: for invalid profiles or overrides
        """
        catalog = catalog or get_message_catalog()
        if threshold_overrides is None:
            threshold_overrides = settings.PHASE_THRESHOLD_OVERRIDES
        if tolerance_overrides is None:
            tolerance_overrides = settings.RULE_TOLERANCE_OVERRIDES

        base: Dict[str, ExerciseProfile] = {}
        for profile in (DEFAULT_PROFILES if profiles is None else profiles):
            if profile.exercise_id in base:
                raise ConfigurationError(
                    f"Duplicate exercise id {profile.exercise_id}",
                    exercise_id=profile.exercise_id,
                )
            base[profile.exercise_id] = profile

        unknown = (set(threshold_overrides) | set(tolerance_overrides)) - set(base)
        if unknown:
            raise ConfigurationError(f"Overrides reference unknown exercises: {sorted(unknown)}")

        built: Dict[str, ExerciseProfile] = {}
        for exercise_id, profile in base.items():
            profile = apply_overrides(
                profile,
                threshold_overrides.get(exercise_id),
                tolerance_overrides.get(exercise_id),
            )
            validate_profile(profile, catalog)
            built[exercise_id] = profile

        self._profiles = MappingProxyType(built)
        logger.info(f"Profile registry loaded: {', '.join(built)}")

    def get_profile(self, exercise_id: Union[str, ExerciseType]) -> ExerciseProfile:
        """
        Look up a profile.

        Raises:
            ConfigurationError: for an unknown exercise id
        """
        if isinstance(exercise_id, ExerciseType):
            exercise_id = exercise_id.value
        profile = self._profiles.get(exercise_id)
        if profile is None:
            raise ConfigurationError(f"Unknown exercise: {exercise_id}", exercise_id=exercise_id)
        return profile

    def exercise_ids(self) -> List[str]:
        return list(self._profiles)

    def __contains__(self, exercise_id: str) -> bool:
        return exercise_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_registry_instance: Optional[ProfileRegistry] = None


def get_profile_registry() -> ProfileRegistry:
    """Get or create the global profile registry instance."""
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = ProfileRegistry()
    return _registry_instance


def get_profile(exercise_id: Union[str, ExerciseType]) -> ExerciseProfile:
    return get_profile_registry().get_profile(exercise_id)
