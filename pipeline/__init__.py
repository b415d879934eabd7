"""
Running Pose Analysis Pipeline

Steps:
1. Frame Capture - Decode the recorded clip into frames
2. Person Validation - Require exactly one visible person
3. Pose Estimation - Keypoints per frame using YOLOv8-Pose
4. Range Tracking - Min/max of 6 running angles across the clip
5. Advisory - Coaching feedback per angle range
6. Video Encoder - Annotated output video
"""

from .errors import AnalysisError, DecodeError, EncodeError
from .step1_frame_capture import VideoCapture, VideoDecoder, DecodedVideo
from .step2_person_detection import PersonValidator, ValidationResult
from .step3_pose_estimation import PoseEstimator
from .step4_range_tracker import AngleRange, RangeTracker, RangeTrackerSet
from .step5_advisory import AdvisoryEngine, AdvisoryResult
from .step6_video_encoder import VideoEncoder
from .video_analyzer import (
    AnalysisResult,
    FailureKind,
    FrameAnalysisPipeline,
    PipelineState,
)

__all__ = [
    'AnalysisError',
    'DecodeError',
    'EncodeError',
    'VideoCapture',
    'VideoDecoder',
    'DecodedVideo',
    'PersonValidator',
    'ValidationResult',
    'PoseEstimator',
    'AngleRange',
    'RangeTracker',
    'RangeTrackerSet',
    'AdvisoryEngine',
    'AdvisoryResult',
    'VideoEncoder',
    'AnalysisResult',
    'FailureKind',
    'FrameAnalysisPipeline',
    'PipelineState',
]
