"""
Angle Calculator Utility
Calculates running joint angles from pose keypoints.
"""

import math
import numpy as np
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from utils.pose_types import Keypoint, NUM_DETECTED_KEYPOINTS


class AngleCategory(Enum):
    """Tracked angle categories."""
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    BODY_LEAN = "body_lean"
    HEAD_TILT = "head_tilt"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

    @classmethod
    def parse(cls, name) -> Optional["AngleCategory"]:
        """
        Resolve a category from its enum, value ('left_knee'), CamelCase
        name ('LeftKnee') or display label ('Left Knee Angles').

        Returns None for unknown names.
        """
        if isinstance(name, cls):
            return name
        key = ''.join(ch for ch in str(name).lower() if ch.isalnum())
        for category in cls:
            if key in (category.value.replace('_', ''),
                       ''.join(ch for ch in category.label.lower() if ch.isalnum())):
                return category
        return None


CATEGORY_LABELS = {
    AngleCategory.LEFT_KNEE: "Left Knee Angles",
    AngleCategory.RIGHT_KNEE: "Right Knee Angles",
    AngleCategory.LEFT_ELBOW: "Left Elbow Angles",
    AngleCategory.RIGHT_ELBOW: "Right Elbow Angles",
    AngleCategory.BODY_LEAN: "Body Lean Angles",
    AngleCategory.HEAD_TILT: "Head Horizontal Angles",
}


class AngleCalculator:
    """
    Calculate running angles from COCO keypoints.

    Tracks 6 angles:
    - left_knee, right_knee
    - left_elbow, right_elbow
    - body_lean (hip vertex, shoulder vs. vertical reference above the hip)
    - head_tilt (signed ear->eye bearing)
    """

    # Angle definitions: (vertex, endpoint_a, endpoint_b) as keypoint indices
    ANGLE_DEFINITIONS = {
        AngleCategory.LEFT_KNEE: (13, 11, 15),
        AngleCategory.RIGHT_KNEE: (14, 12, 16),
        AngleCategory.LEFT_ELBOW: (7, 5, 9),
        AngleCategory.RIGHT_ELBOW: (8, 6, 10),
        AngleCategory.BODY_LEAN: (11, 5, 17),
    }

    # (ear, eye) pairs for head tilt, primary first
    HEAD_TILT_PAIRS = [(3, 1), (4, 2)]

    # Reference point is built from these
    REFERENCE_HIP = 11
    REFERENCE_SHOULDER = 5

    CONFIDENCE_THRESHOLD = 0.5

    @staticmethod
    def calculate_angle(
        vertex: Tuple[float, float],
        point_a: Tuple[float, float],
        point_b: Tuple[float, float]
    ) -> Optional[float]:
        """
        Calculate angle at vertex between point_a and point_b.

        Args:
            vertex: Vertex point where angle is measured
            point_a: First ray endpoint (x, y)
            point_b: Second ray endpoint (x, y)

        Returns:
            Angle in degrees [0, 180], or None if either ray has zero length
        """
        v = np.asarray(vertex, dtype=np.float64)
        va = np.asarray(point_a, dtype=np.float64) - v
        vb = np.asarray(point_b, dtype=np.float64) - v

        norm_a = np.linalg.norm(va)
        norm_b = np.linalg.norm(vb)
        if norm_a == 0.0 or norm_b == 0.0:
            return None

        cos_angle = np.dot(va, vb) / (norm_a * norm_b)

        # Clamp to valid range for arccos
        cos_angle = np.clip(cos_angle, -1.0, 1.0)

        return float(np.degrees(np.arccos(cos_angle)))

    @classmethod
    def angle_if_confident(
        cls,
        keypoints: Sequence[Keypoint],
        vertex: int,
        endpoint_a: int,
        endpoint_b: int,
        threshold: float = CONFIDENCE_THRESHOLD
    ) -> Optional[float]:
        """Angle at `vertex`, or None if any of the three keypoints is missing or unreliable."""
        if len(keypoints) <= max(vertex, endpoint_a, endpoint_b):
            return None
        points = (keypoints[vertex], keypoints[endpoint_a], keypoints[endpoint_b])
        if any(kp.confidence <= threshold for kp in points):
            return None
        return cls.calculate_angle(*(kp.position for kp in points))

    @staticmethod
    def horizontal_angle(ear: Tuple[float, float], eye: Tuple[float, float]) -> float:
        """
        Signed bearing of the ear->eye vector in degrees, range (-180, 180].

        Image Y grows downward, so a positive angle means the eye sits below
        the ear (looking down) and a negative one means looking up.
        """
        return math.degrees(math.atan2(eye[1] - ear[1], eye[0] - ear[0]))

    @classmethod
    def head_tilt_angle(
        cls,
        keypoints: Sequence[Keypoint],
        threshold: float = CONFIDENCE_THRESHOLD
    ) -> Optional[float]:
        """Head tilt from the left ear/eye pair, falling back to the right pair."""
        for ear_idx, eye_idx in cls.HEAD_TILT_PAIRS:
            if len(keypoints) <= max(ear_idx, eye_idx):
                continue
            ear, eye = keypoints[ear_idx], keypoints[eye_idx]
            if ear.confidence > threshold and eye.confidence > threshold:
                return cls.horizontal_angle(ear.position, eye.position)
        return None

    @classmethod
    def add_reference_point(
        cls,
        keypoints: Sequence[Keypoint],
        threshold: float = CONFIDENCE_THRESHOLD
    ) -> List[Keypoint]:
        """
        Append the synthetic vertical reference point (index 17) above the left hip.

        The point sits at twice the hip-shoulder height above the hip and is
        only added when both are confident. Returns a new list.
        """
        result = list(keypoints)
        if len(result) != NUM_DETECTED_KEYPOINTS:
            return result

        hip = result[cls.REFERENCE_HIP]
        shoulder = result[cls.REFERENCE_SHOULDER]
        if hip.confidence > threshold and shoulder.confidence > threshold:
            offset = 2 * abs(shoulder.y - hip.y)
            result.append(Keypoint(x=hip.x, y=hip.y - offset, confidence=1.0))
        return result

    @classmethod
    def calculate_all_angles(
        cls,
        keypoints: Sequence[Keypoint],
        threshold: float = CONFIDENCE_THRESHOLD
    ) -> Dict[AngleCategory, Optional[float]]:
        """
        Calculate all 6 tracked angles for one frame.

        Args:
            keypoints: Keypoints including the reference point when available
            threshold: Confidence gate

        Returns:
            Mapping category -> degrees, None where no reading is possible
        """
        readings = {
            category: cls.angle_if_confident(keypoints, *indices, threshold=threshold)
            for category, indices in cls.ANGLE_DEFINITIONS.items()
        }
        readings[AngleCategory.HEAD_TILT] = cls.head_tilt_angle(keypoints, threshold)
        return readings
