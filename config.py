"""
Running Pose Analyzer Configuration
===================================

Central configuration file for all pipeline parameters.
"""

from pathlib import Path

# =============================================================================
# YOLOv8-Pose Settings
# =============================================================================
YOLOV8_POSE_MODEL = "yolov8n-pose.pt"  # Options: yolov8n-pose.pt, yolov8s-pose.pt, yolov8x-pose.pt
YOLOV8_DEVICE = None  # None=auto-detect, "cuda" or "cpu"

DETECTION_CONFIDENCE = 0.5  # "Is a person present" gate on the detection channel
KEYPOINT_CONFIDENCE = 0.5   # Keypoints at or below this are not trusted for geometry

# =============================================================================
# Person Validation (runs once, before the angle pipeline)
# =============================================================================
VALIDATION_MODEL = "yolov8n.pt"
VALIDATION_PERSON_CONFIDENCE = 0.6
PERSON_LABEL = "person"

# =============================================================================
# Frame Analysis Settings
# =============================================================================
FRAME_STRIDE = 2            # Analyze every Nth decoded frame
NUM_WORKERS = 1             # >1 dispatches pose inference to a thread pool
KEEP_UNDETECTED_FRAMES = True  # Pass frames without a detection through unannotated
TIMEOUT_SECONDS = None      # Per-video ceiling, None = unlimited

# =============================================================================
# Output Video Settings
# =============================================================================
OUTPUT_PATH = "output/annotated_video.mp4"
OUTPUT_FPS = 30.0           # Used when the source fps is unknown
OUTPUT_FOURCC = "mp4v"
ENCODER_QUEUE_SIZE = 8

# =============================================================================
# Advisory Settings
# =============================================================================
ADVISORY_CONFIG_PATH = Path(__file__).parent / "pipeline" / "advisory_thresholds.yaml"
HEAD_TILT_RANGE = (-5.0, 15.0)

# =============================================================================
# Display Settings
# =============================================================================
FONT_SCALE = 0.5

# Colors (BGR format)
COLOR_MAGENTA = (255, 0, 255)
COLOR_YELLOW = (0, 255, 255)
COLOR_BLUE = (255, 0, 0)
COLOR_GREEN = (0, 255, 0)
COLOR_BLACK = (0, 0, 0)
