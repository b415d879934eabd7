"""
Pose data types shared by the pipeline steps.

Coordinates are image-space pixels so the angle math and the renderer work
on the same numbers the pose model produced.
"""

import math
from typing import List, Tuple
from dataclasses import dataclass, field


# COCO keypoint names (17 keypoints) + synthetic reference point
KEYPOINT_NAMES = [
    'nose',           # 0
    'left_eye',       # 1
    'right_eye',      # 2
    'left_ear',       # 3
    'right_ear',      # 4
    'left_shoulder',  # 5
    'right_shoulder', # 6
    'left_elbow',     # 7
    'right_elbow',    # 8
    'left_wrist',     # 9
    'right_wrist',    # 10
    'left_hip',       # 11
    'right_hip',      # 12
    'left_knee',      # 13
    'right_knee',     # 14
    'left_ankle',     # 15
    'right_ankle',    # 16
    'vertical_reference',  # 17 (derived, never detected)
]

NUM_DETECTED_KEYPOINTS = 17
REFERENCE_INDEX = 17


@dataclass(frozen=True)
class Keypoint:
    """Single body keypoint in image-space pixel coordinates."""
    x: float
    y: float
    confidence: float

    def __post_init__(self):
        # Models occasionally report out-of-range or NaN scores
        confidence = float(self.confidence)
        if not math.isfinite(confidence):
            confidence = 0.0
        clamped = min(max(confidence, 0.0), 1.0)
        object.__setattr__(self, 'confidence', clamped)

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass
class FrameDetection:
    """Pose detection for one video frame (single subject)."""
    bbox: Tuple[float, float, float, float]  # x1, y1, x2, y2
    keypoints: List[Keypoint] = field(default_factory=list)
    detection_confidence: float = 0.0
