"""
Step 2: Person Validation
Checks that exactly one person is clearly visible before a clip is analyzed.

Runs a general object detector on a single representative frame. This is a
precondition gate for the angle pipeline, not part of the per-frame loop.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass
class Detection:
    """Object detection result."""
    label: str
    confidence: float
    bbox: Tuple[int, int, int, int]  # x1, y1, x2, y2


@dataclass
class ValidationResult:
    """Outcome of the single-person check."""
    is_valid: bool
    person_count: int
    message: str
    detections: List[Detection] = field(default_factory=list)


def representative_frame(frames: Sequence[np.ndarray]) -> Optional[np.ndarray]:
    """Middle frame of the clip, or None for an empty clip."""
    if not frames:
        return None
    return frames[len(frames) // 2]


def validate_detections(
    detections: Sequence[Detection],
    confidence_threshold: float = 0.6,
    person_label: str = "person"
) -> ValidationResult:
    """Exactly one person at or above the confidence threshold passes."""
    persons = [
        d for d in detections
        if d.label == person_label and d.confidence >= confidence_threshold
    ]
    if len(persons) == 1:
        return ValidationResult(
            is_valid=True,
            person_count=1,
            message="Validation passed. Exactly one person detected.",
            detections=list(detections)
        )
    return ValidationResult(
        is_valid=False,
        person_count=len(persons),
        message=(
            "Validation failed. Please ensure exactly one person is present "
            f"in the video with clear visibility (found {len(persons)})."
        ),
        detections=list(detections)
    )


class PersonValidator:
    """Detect objects with YOLOv8 and validate the single-runner assumption."""

    def __init__(
        self,
        model_path: str = "yolov8n.pt",
        confidence_threshold: float = 0.6,
        person_label: str = "person",
        device: str = None
    ):
        self.confidence_threshold = confidence_threshold
        self.person_label = person_label
        self.model_path = model_path
        self.device = device
        self.model = None
        self._load_model()

    def _load_model(self) -> None:
        """Load YOLO model."""
        from ultralytics import YOLO
        self.model = YOLO(self.model_path)

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect objects in frame.

        Args:
            frame: Input image (BGR format)

        Returns:
            List of Detection objects, highest confidence first
        """
        results = self.model(frame, verbose=False, device=self.device)

        detections = []
        for result in results:
            names = result.names
            for box in result.boxes:
                x1, y1, x2, y2 = map(int, box.xyxy[0].tolist())
                detections.append(Detection(
                    label=str(names[int(box.cls[0])]),
                    confidence=float(box.conf[0]),
                    bbox=(x1, y1, x2, y2)
                ))

        # Sort by confidence (highest first)
        detections.sort(key=lambda d: d.confidence, reverse=True)

        return detections

    def validate(self, frame: np.ndarray) -> ValidationResult:
        result = validate_detections(
            self.detect(frame),
            confidence_threshold=self.confidence_threshold,
            person_label=self.person_label
        )
        logger.info("Person validation: %s", result.message)
        return result

    def validate_clip(self, frames: Sequence[np.ndarray]) -> ValidationResult:
        frame = representative_frame(frames)
        if frame is None:
            return ValidationResult(is_valid=False, person_count=0,
                                    message="Validation failed. The video contains no frames.")
        return self.validate(frame)
