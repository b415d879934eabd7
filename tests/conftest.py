"""Shared fixtures: synthetic runner keypoints and fake pipeline collaborators."""

import sys
import math
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.pose_types import Keypoint, FrameDetection


# Side view of a runner facing right (pixel coordinates)
RUNNER_POSITIONS = {
    0: (105, 50),    # nose
    1: (100, 50),    # left eye
    2: (98, 52),     # right eye
    3: (90, 50),     # left ear
    4: (88, 52),     # right ear
    5: (100, 100),   # left shoulder
    6: (96, 100),    # right shoulder
    7: (100, 150),   # left elbow
    8: (96, 150),    # right elbow
    9: (150, 150),   # left wrist
    10: (146, 150),  # right wrist
    11: (100, 200),  # left hip
    12: (96, 200),   # right hip
    13: (100, 300),  # left knee
    14: (96, 300),   # right knee
    15: (100, 400),  # left ankle
    16: (96, 400),   # right ankle
}


def make_keypoints(confidence=0.9, overrides=None):
    """17 keypoints of the reference runner, with optional per-index overrides."""
    overrides = overrides or {}
    keypoints = []
    for i in range(17):
        x, y = RUNNER_POSITIONS[i]
        conf = confidence
        if i in overrides:
            x, y, conf = overrides[i]
        keypoints.append(Keypoint(x=x, y=y, confidence=conf))
    return keypoints


def knee_detection(angle_deg, detection_confidence=0.9):
    """Detection where only the left leg is confident and the left knee bends to `angle_deg`."""
    knee = (200.0, 300.0)
    hip = (200.0, 200.0)
    theta = math.radians(angle_deg)
    ankle = (knee[0] + 100 * math.sin(theta), knee[1] - 100 * math.cos(theta))
    keypoints = [Keypoint(x=0.0, y=0.0, confidence=0.1) for _ in range(17)]
    keypoints[11] = Keypoint(x=hip[0], y=hip[1], confidence=0.9)
    keypoints[13] = Keypoint(x=knee[0], y=knee[1], confidence=0.9)
    keypoints[15] = Keypoint(x=ankle[0], y=ankle[1], confidence=0.9)
    return FrameDetection(bbox=(150, 150, 300, 450), keypoints=keypoints,
                          detection_confidence=detection_confidence)


def make_frames(n):
    """Tiny frames whose pixel value encodes the frame index."""
    return [np.full((8, 8, 3), i, dtype=np.uint8) for i in range(n)]


def frame_index(frame):
    return int(frame[0, 0, 0])


class ScriptedPoseModel:
    """Pose model returning a fixed detection (or None) per frame index."""

    def __init__(self, detections, on_call=None):
        self.detections = detections
        self.on_call = on_call
        self.calls = []

    def estimate(self, image):
        index = frame_index(image)
        self.calls.append(index)
        if self.on_call is not None:
            self.on_call(index)
        return self.detections.get(index)


class RecordingEncoder:
    def __init__(self):
        self.frames = None
        self.fps = None

    def encode(self, frames, output_path, fps=30.0):
        self.frames = list(frames)
        self.fps = fps
        return Path(output_path)


@pytest.fixture
def runner_keypoints():
    return make_keypoints()


@pytest.fixture
def rng():
    return np.random.RandomState(42)
