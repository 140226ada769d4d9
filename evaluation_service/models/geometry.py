"""
FORMCOACH Evaluation Service - Geometry Kernel

Angle, distance and midpoint primitives over 2-D and 3-D points, plus the
visibility gate used before any rule is evaluated.

Points may be Landmark objects (their x, y are used) or any array-like of
2 or 3 floats.
"""

import numpy as np
from typing import Iterable, Optional, Union, Sequence

from .landmarks import Frame, Landmark, LandmarkIndex


Point = Union[Landmark, Sequence[float], np.ndarray]

DEFAULT_VISIBILITY_THRESHOLD = 0.5

# Below this length a vector is treated as zero-length
_EPSILON = 1e-9


def as_point(p: Point) -> np.ndarray:
    """Convert a Landmark or array-like into a float numpy vector."""
    if isinstance(p, Landmark):
        return p.xy()
    return np.asarray(p, dtype=float)


# ═══════════════════════════════════════════════════════════════════════════════
# PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════════════

def angle(a: Point, b: Point, c: Point) -> float:
    """
    Calculate angle at point b formed by points a-b-c.

    Args:
        a, b, c: 2-D or 3-D points (all of the same dimension)

    Returns:
        Angle in degrees (0-180). A zero-length ray (a == b or c == b)
        yields 0.0 instead of NaN.
    """
    ba = as_point(a) - as_point(b)
    bc = as_point(c) - as_point(b)

    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba < _EPSILON or norm_bc < _EPSILON:
        return 0.0

    cosine_angle = np.clip(np.dot(ba, bc) / (norm_ba * norm_bc), -1.0, 1.0)
    return float(np.degrees(np.arccos(cosine_angle)))


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(as_point(b) - as_point(a)))


def midpoint(a: Point, b: Point) -> np.ndarray:
    """Component-wise average of two points."""
    return (as_point(a) + as_point(b)) / 2


def horizontal_distance(a: Point, b: Point) -> float:
    return float(abs(as_point(b)[0] - as_point(a)[0]))


def vertical_distance(a: Point, b: Point) -> float:
    return float(abs(as_point(b)[1] - as_point(a)[1]))


# ═══════════════════════════════════════════════════════════════════════════════
# VISIBILITY GATE
# ═══════════════════════════════════════════════════════════════════════════════

def is_visible(landmark: Optional[Landmark], threshold: float = DEFAULT_VISIBILITY_THRESHOLD) -> bool:
    """True when the landmark exists and its visibility meets the threshold."""
    if landmark is None:
        return False
    return landmark.visibility >= threshold


def all_visible(
    frame: Frame,
    required_indices: Iterable[LandmarkIndex],
    threshold: float = DEFAULT_VISIBILITY_THRESHOLD
) -> bool:
    """
    Check that every required landmark of a frame is visible.

    An empty requirement set is vacuously satisfied.
    """
    return all(is_visible(frame[index], threshold) for index in required_indices)
