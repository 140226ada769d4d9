"""
FORMCOACH Evaluation Service - Landmarks

Typed pose landmarks as delivered by the on-device pose detector
(MediaPipe BlazePose topology, 33 points per frame).
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union
from enum import IntEnum


# ═══════════════════════════════════════════════════════════════════════════════
# LANDMARK INDEX
# ═══════════════════════════════════════════════════════════════════════════════

class LandmarkIndex(IntEnum):
    """Body joint identities, in detector output order."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


LANDMARK_COUNT = len(LandmarkIndex)


# ═══════════════════════════════════════════════════════════════════════════════
# LANDMARK AND FRAME
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Landmark:
    """A single pose landmark with normalized coordinates and visibility."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    def xy(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)

    def to_numpy(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)


LandmarkLike = Union[Landmark, Sequence[float], Mapping[str, float], None]


def _coerce_landmark(value: LandmarkLike) -> Optional[Landmark]:
    if value is None or isinstance(value, Landmark):
        return value
    if isinstance(value, Mapping):
        return Landmark(
            x=float(value["x"]),
            y=float(value["y"]),
            z=float(value.get("z", 0.0)),
            visibility=float(value.get("visibility", 1.0)),
        )
    return Landmark(*(float(v) for v in value))


@dataclass(frozen=True)
class Frame:
    """
    One full set of landmarks captured at one instant.

    Attributes:
        landmarks: exactly LANDMARK_COUNT entries, indexed by LandmarkIndex;
            an undetected joint is None
        timestamp: capture time in milliseconds
    """
    landmarks: Tuple[Optional[Landmark], ...]
    timestamp: float = 0.0

    def __post_init__(self):
        if len(self.landmarks) != LANDMARK_COUNT:
            raise ValueError(
                f"Frame needs {LANDMARK_COUNT} landmarks, got {len(self.landmarks)}"
            )

    @classmethod
    def from_sequence(cls, landmarks: Iterable[LandmarkLike], timestamp: float = 0.0) -> "Frame":
        """
        Build a frame from detector output.

        Accepts Landmark objects, (x, y, z, visibility) sequences or
        {"x", "y", "z", "visibility"} dicts; None marks a missing joint.
        """
        return cls(
            landmarks=tuple(_coerce_landmark(lm) for lm in landmarks),
            timestamp=float(timestamp),
        )

    def __getitem__(self, index: LandmarkIndex) -> Optional[Landmark]:
        return self.landmarks[int(index)]

    def __iter__(self) -> Iterator[Optional[Landmark]]:
        return iter(self.landmarks)

    def __len__(self) -> int:
        return len(self.landmarks)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "timestamp": self.timestamp,
            "landmarks": [
                None if lm is None else {
                    "id": idx,
                    "name": LandmarkIndex(idx).name,
                    "x": lm.x,
                    "y": lm.y,
                    "z": lm.z,
                    "visibility": lm.visibility,
                }
                for idx, lm in enumerate(self.landmarks)
            ],
        }
