"""
Utils: Visualization
Drawing helpers for annotated running frames.
"""

import cv2
import numpy as np
from typing import Dict, Optional, Sequence, Tuple

import config
from utils.angle_calculator import AngleCategory
from utils.pose_types import Keypoint


# Skeleton edges over keypoint indices
SKELETON_CONNECTIONS = [
    (0, 1), (0, 2), (1, 3), (2, 4),         # Head
    (5, 6), (5, 11), (6, 12), (11, 12),     # Torso
    (5, 7), (6, 8), (7, 9), (8, 10),        # Arms
    (11, 13), (12, 14), (13, 15), (14, 16), # Legs
    (4, 6),                                 # Head to shoulder
    (11, 17),                               # Vertical reference above the hip
]


def draw_skeleton(
    image: np.ndarray,
    bbox: Optional[Tuple[float, float, float, float]],
    keypoints: Sequence[Keypoint],
    connections: Sequence[Tuple[int, int]] = SKELETON_CONNECTIONS,
    threshold: float = 0.5
) -> np.ndarray:
    """
    Draw bounding box, skeleton and keypoint indices.

    Edges are drawn only when both endpoints are confident. The input image
    is left untouched.
    """
    annotated = image.copy()

    if bbox is not None:
        x1, y1, x2, y2 = (int(round(v)) for v in bbox)
        cv2.rectangle(annotated, (x1, y1), (x2, y2), config.COLOR_MAGENTA, 2)

    for i, j in connections:
        if i >= len(keypoints) or j >= len(keypoints):
            continue
        start, end = keypoints[i], keypoints[j]
        if start.confidence > threshold and end.confidence > threshold:
            cv2.line(annotated,
                     (int(start.x), int(start.y)),
                     (int(end.x), int(end.y)),
                     config.COLOR_YELLOW, 2)

    for index, kp in enumerate(keypoints):
        if kp.confidence <= threshold:
            continue
        x, y = int(kp.x), int(kp.y)
        cv2.circle(annotated, (x, y), 3, config.COLOR_BLUE, -1)
        cv2.putText(annotated, str(index), (x + 4, y - 4),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, config.COLOR_MAGENTA, 1)

    return annotated


def draw_angle_readings(
    frame: np.ndarray,
    readings: Dict[AngleCategory, Optional[float]]
) -> np.ndarray:
    """Draw the current frame's angle readings in the top-left corner."""
    frame_copy = frame.copy()

    lines = [
        f"{category.label.replace(' Angles', '')}: {angle:.0f} deg"
        for category, angle in readings.items()
        if angle is not None
    ]
    if not lines:
        return frame_copy

    # Background box
    height = 20 * len(lines) + 10
    cv2.rectangle(frame_copy, (5, 5), (230, 5 + height), config.COLOR_BLACK, -1)

    for row, text in enumerate(lines):
        cv2.putText(frame_copy, text, (12, 25 + 20 * row),
                    cv2.FONT_HERSHEY_SIMPLEX, config.FONT_SCALE, config.COLOR_GREEN, 1)

    return frame_copy


def render_frame(
    image: np.ndarray,
    bbox: Optional[Tuple[float, float, float, float]],
    keypoints: Sequence[Keypoint],
    readings: Optional[Dict[AngleCategory, Optional[float]]] = None
) -> np.ndarray:
    """Default renderer used by the analysis pipeline."""
    annotated = draw_skeleton(image, bbox, keypoints)
    if readings:
        annotated = draw_angle_readings(annotated, readings)
    return annotated
