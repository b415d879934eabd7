"""
Step 3: Pose Estimation
Locates the runner and its body keypoints using YOLOv8-Pose.
"""

import logging
import threading
import numpy as np
from typing import Optional

from utils.pose_types import Keypoint, FrameDetection, NUM_DETECTED_KEYPOINTS

logger = logging.getLogger(__name__)


class PoseEstimator:
    """Estimate pose using YOLOv8-Pose (person detection + keypoints in one pass)."""

    def __init__(
        self,
        model_path: str = "yolov8n-pose.pt",
        device: str = None,
        min_candidate_confidence: float = 0.1
    ):
        """
        Initialize YOLOv8-Pose estimator.

        The estimator returns the most confident candidate and leaves the
        person-present gate to the analysis pipeline.

        Args:
            model_path: Path to YOLOv8-Pose model (nano/small/.../xlarge)
            device: 'cuda' or 'cpu' (auto-detect if None)
            min_candidate_confidence: Lower bound passed to the model's NMS stage
        """
        self.model_path = model_path
        self.device = device
        self.min_candidate_confidence = min_candidate_confidence
        self.model = None
        # One YOLO predictor is shared by every caller; predict is not re-entrant
        self._predict_lock = threading.Lock()
        self._init_yolo()

    def _init_yolo(self) -> None:
        """Initialize YOLOv8-Pose model."""
        from ultralytics import YOLO
        import torch

        if self.device is None:
            self.device = 'cuda' if torch.cuda.is_available() else 'cpu'

        self.model = YOLO(self.model_path)
        logger.info("Using YOLOv8-Pose (%s) on %s", self.model_path, self.device.upper())

    def estimate(self, image: np.ndarray) -> Optional[FrameDetection]:
        """
        Detect the runner and estimate keypoints.

        Args:
            image: Input image (BGR format)

        Returns:
            FrameDetection for the most confident person, or None
        """
        with self._predict_lock:
            results = self.model(
                image,
                verbose=False,
                device=self.device,
                conf=self.min_candidate_confidence
            )

        for result in results:
            if result.keypoints is None or len(result.keypoints) == 0:
                continue
            boxes = result.boxes
            if boxes is None or len(boxes) == 0:
                continue

            # Boxes come sorted by confidence; the first one is the subject
            conf = float(boxes.conf[0])
            x1, y1, x2, y2 = (float(v) for v in boxes.xyxy[0].tolist())

            # Shape: [num_people, 17, 3] where 3 = x, y, conf (pixels)
            data = result.keypoints.data[0]
            keypoints = [
                Keypoint(
                    x=float(data[i, 0]),
                    y=float(data[i, 1]),
                    confidence=float(data[i, 2])
                )
                for i in range(min(len(data), NUM_DETECTED_KEYPOINTS))
            ]

            return FrameDetection(
                bbox=(x1, y1, x2, y2),
                keypoints=keypoints,
                detection_confidence=conf
            )

        return None

    def close(self) -> None:
        """Release resources."""
        # YOLOv8 handles cleanup automatically
        self.model = None
