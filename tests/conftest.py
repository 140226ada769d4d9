"""Shared fixtures: synthetic landmark frames and isolated evaluation objects."""

from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pytest

from core.notifications import LoggingFeedbackSink
from evaluation_service.models.landmarks import Frame, Landmark, LandmarkIndex, LANDMARK_COUNT
from evaluation_service.models.messages import get_message_catalog
from evaluation_service.models.profiles import ProfileRegistry
from evaluation_service.models.session import SessionEvaluator


# ============================================================================
# Frame builders
# ============================================================================

def build_frame(
    points: Optional[Dict[LandmarkIndex, Tuple[float, float]]] = None,
    timestamp: float = 0.0,
    visibility: float = 1.0,
    hidden: Iterable[LandmarkIndex] = (),
) -> Frame:
    """All 33 landmarks at the image centre, overridden by ``points``.

    Landmarks in ``hidden`` keep their position but get visibility 0.2.
    """
    coords = {index: (0.5, 0.5) for index in LandmarkIndex}
    coords.update(points or {})
    hidden = set(hidden)

    landmarks = []
    for index in LandmarkIndex:
        x, y = coords[index]
        landmarks.append(Landmark(x, y, 0.0, 0.2 if index in hidden else visibility))

    assert len(landmarks) == LANDMARK_COUNT
    return Frame(tuple(landmarks), timestamp)


def squat_points(knee_angle: float, toe_offset: float = 0.1) -> Dict[LandmarkIndex, Tuple[float, float]]:
    """Side-view squat pose whose hip-knee-ankle angle equals ``knee_angle``.

    Shoulder, hip and knee are vertically aligned (straight back). The toe
    sits ``toe_offset`` ahead of the ankle, so a positive offset keeps the
    knee behind the toe.
    """
    theta = np.radians(knee_angle)
    knee = (0.5, 0.5)
    ankle = (0.5 + 0.2 * np.sin(theta), 0.5 - 0.2 * np.cos(theta))
    return {
        LandmarkIndex.LEFT_SHOULDER: (0.5, 0.1),
        LandmarkIndex.LEFT_HIP: (0.5, 0.3),
        LandmarkIndex.LEFT_KNEE: knee,
        LandmarkIndex.LEFT_ANKLE: ankle,
        LandmarkIndex.LEFT_FOOT_INDEX: (ankle[0] + toe_offset, ankle[1]),
    }


def build_squat_frame(
    knee_angle: float,
    timestamp: float = 0.0,
    toe_offset: float = 0.1,
    hidden: Iterable[LandmarkIndex] = (),
) -> Frame:
    return build_frame(squat_points(knee_angle, toe_offset), timestamp=timestamp, hidden=hidden)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def squat_frame():
    return build_squat_frame


@pytest.fixture
def catalog():
    return get_message_catalog()


@pytest.fixture
def registry(catalog):
    """Default profiles, independent of any environment overrides."""
    return ProfileRegistry(catalog=catalog, threshold_overrides={}, tolerance_overrides={})


@pytest.fixture
def sink():
    return LoggingFeedbackSink()


@pytest.fixture
def evaluator(registry, catalog):
    return SessionEvaluator(registry=registry, catalog=catalog)
