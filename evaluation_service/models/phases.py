"""
FORMCOACH Evaluation Service - Repetition Phases
"""

from dataclasses import dataclass
from enum import Enum


class PhaseState(Enum):
    """Repetition phases. TOP is the rest/start position of every exercise."""
    TOP = "top"
    DESCENDING = "descending"
    BOTTOM = "bottom"
    ASCENDING = "ascending"


@dataclass(frozen=True)
class PhaseThresholds:
    """
    Primary-angle thresholds driving phase transitions (degrees).

    top_angle is the angle at the rest position and bottom_angle the angle at
    the far end of the movement. top_angle may be smaller than bottom_angle
    for movements that open a joint (e.g. shoulder press).
    """
    top_angle: float
    bottom_angle: float
    hysteresis_margin: float = 10.0

    @property
    def direction(self) -> int:
        """+1 when the working phase decreases the angle, -1 when it increases it."""
        return 1 if self.top_angle >= self.bottom_angle else -1
