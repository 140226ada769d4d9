"""Tests for landmarks and the geometry kernel."""

import numpy as np
import pytest

from evaluation_service.models.geometry import (
    all_visible,
    angle,
    distance,
    horizontal_distance,
    is_visible,
    midpoint,
    vertical_distance,
)
from evaluation_service.models.landmarks import Frame, Landmark, LandmarkIndex, LANDMARK_COUNT


# ============================================================================
# Test: Landmarks and Frames
# ============================================================================

class TestFrame:

    def test_landmark_count(self):
        assert LANDMARK_COUNT == 33
        assert LandmarkIndex.NOSE == 0
        assert LandmarkIndex.RIGHT_FOOT_INDEX == 32

    def test_wrong_arity_rejected(self):
        with pytest.raises(ValueError):
            Frame(tuple(Landmark(0.5, 0.5) for _ in range(32)))

    def test_from_sequence_accepts_mixed_inputs(self):
        raw = [(0.1, 0.2, 0.0, 0.9)] * 31 + [{"x": 0.3, "y": 0.4}, None]
        frame = Frame.from_sequence(raw, timestamp=40)

        assert frame[LandmarkIndex.NOSE] == Landmark(0.1, 0.2, 0.0, 0.9)
        assert frame[LandmarkIndex.LEFT_FOOT_INDEX] == Landmark(0.3, 0.4, 0.0, 1.0)
        assert frame[LandmarkIndex.RIGHT_FOOT_INDEX] is None
        assert frame.timestamp == 40.0
        assert len(frame) == LANDMARK_COUNT

    def test_to_dict(self, make_frame):
        data = make_frame(timestamp=5).to_dict()
        assert data["timestamp"] == 5
        assert data["landmarks"][11]["name"] == "LEFT_SHOULDER"

    def test_landmark_is_immutable(self):
        lm = Landmark(0.1, 0.2)
        with pytest.raises(AttributeError):
            lm.x = 0.3


# ============================================================================
# Test: Primitives
# ============================================================================

class TestAngle:

    def test_right_angle(self):
        assert angle((0, 0), (1, 0), (1, 1)) == pytest.approx(90.0)

    def test_straight_and_folded(self):
        assert angle((0, 0), (1, 0), (2, 0)) == pytest.approx(180.0)
        assert angle((2, 0), (1, 0), (2, 0)) == pytest.approx(0.0)

    def test_commutative(self):
        a, b, c = (0.2, 0.7), (0.5, 0.5), (0.9, 0.1)
        assert angle(a, b, c) == pytest.approx(angle(c, b, a))

    def test_degenerate_returns_zero(self):
        p = (0.3, 0.3)
        assert angle(p, p, p) == 0.0
        assert angle(p, p, (0.5, 0.9)) == 0.0

    def test_three_dimensional(self):
        assert angle((1, 0, 0), (0, 0, 0), (0, 0, 1)) == pytest.approx(90.0)

    def test_landmarks_use_xy(self):
        a = Landmark(0.0, 0.0, z=5.0)
        b = Landmark(1.0, 0.0, z=-3.0)
        c = Landmark(1.0, 1.0, z=2.0)
        assert angle(a, b, c) == pytest.approx(90.0)

    def test_never_nan(self):
        # Nearly collinear points push the cosine past 1 without clipping
        value = angle((0, 0), (1e-8, 0), (1, 1e-12))
        assert not np.isnan(value)


class TestDistances:

    def test_distance(self):
        assert distance((0, 0), (3, 4)) == pytest.approx(5.0)
        assert distance((0, 0, 0), (1, 2, 2)) == pytest.approx(3.0)

    def test_midpoint(self):
        np.testing.assert_allclose(midpoint((0, 0), (2, 4)), [1.0, 2.0])

    def test_axis_distances(self):
        assert horizontal_distance((0.1, 0.9), (0.4, 0.2)) == pytest.approx(0.3)
        assert vertical_distance((0.1, 0.9), (0.4, 0.2)) == pytest.approx(0.7)


# ============================================================================
# Test: Visibility Gate
# ============================================================================

class TestVisibility:

    def test_is_visible(self):
        assert is_visible(Landmark(0, 0, visibility=0.5))
        assert not is_visible(Landmark(0, 0, visibility=0.49))
        assert not is_visible(None)
        assert is_visible(Landmark(0, 0, visibility=0.3), threshold=0.3)

    def test_all_visible(self, make_frame):
        frame = make_frame(hidden=[LandmarkIndex.LEFT_KNEE])
        assert all_visible(frame, [LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_ANKLE])
        assert not all_visible(frame, [LandmarkIndex.LEFT_HIP, LandmarkIndex.LEFT_KNEE])

    def test_empty_requirement_is_vacuously_true(self, make_frame):
        frame = make_frame(visibility=0.0)
        assert all_visible(frame, [])

    def test_missing_landmark_not_visible(self):
        frame = Frame.from_sequence([None] * LANDMARK_COUNT)
        assert not all_visible(frame, [LandmarkIndex.NOSE])
