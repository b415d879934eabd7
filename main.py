"""
Running Pose Analyzer - Offline Video Analysis
==============================================

Pipeline (YOLOv8-Pose):
1. Person Validation - Exactly one runner must be visible
2. Frame Capture - Decode the clip and keep every Nth frame
3. Pose Estimation - 17 COCO keypoints per frame
4. Range Tracking - Knee, elbow, body lean and head angles
5. Advisory - Coaching feedback per angle
6. Video Encoder - Annotated output video

Usage:
    python main.py path.mp4                       # Analyze and write annotated video
    python main.py path.mp4 --no-video            # Angles and advice only
    python main.py path.mp4 --stride 1 --workers 4
"""

import argparse
import logging
import sys

import config
from pipeline.errors import DecodeError
from pipeline.step1_frame_capture import DecodedVideo, VideoDecoder
from pipeline.step2_person_detection import PersonValidator
from pipeline.step3_pose_estimation import PoseEstimator
from pipeline.step5_advisory import AdvisoryEngine
from pipeline.step6_video_encoder import VideoEncoder
from pipeline.video_analyzer import (
    FAILURE_MESSAGES,
    AnalysisResult,
    FailureKind,
    FrameAnalysisPipeline,
)
from utils.angle_calculator import AngleCategory

logger = logging.getLogger("runpose")


def validate_video(video: DecodedVideo) -> bool:
    """Run the single-person check on a representative frame."""
    validator = PersonValidator(
        model_path=config.VALIDATION_MODEL,
        confidence_threshold=config.VALIDATION_PERSON_CONFIDENCE,
        person_label=config.PERSON_LABEL,
        device=config.YOLOV8_DEVICE
    )
    result = validator.validate_clip(video.frames)
    for detection in result.detections:
        print(f"  {detection.label:<12} {detection.confidence * 100:6.2f}%")
    print(result.message)
    return result.is_valid


def print_report(result: AnalysisResult, engine: AdvisoryEngine) -> None:
    """Print angle ranges and advice for every category."""
    print("\n" + "=" * 60)
    print(f"Frames analyzed: {result.total_frames_processed} "
          f"(person detected in {result.frames_with_detection})")
    if result.output_path:
        print(f"Annotated video: {result.output_path}")
    if result.user_message:
        print(f"\n⚠️  {result.user_message}")
    print("=" * 60)

    advisories = result.advisories(engine, head_tilt_range=config.HEAD_TILT_RANGE)
    for category in AngleCategory:
        angle_range = result.ranges.get(category)
        advice = advisories[category]
        if category == AngleCategory.HEAD_TILT:
            recommended = config.HEAD_TILT_RANGE
        else:
            recommended = engine.recommended_range(category)

        print(f"\n{category.label}")
        if angle_range is None:
            print("  Minimal angle: -    Maximal angle: -")
        else:
            print(f"  Minimal angle: {angle_range.min:.0f}°    "
                  f"Maximal angle: {angle_range.max:.0f}°")
        if recommended:
            print(f"  Recommended range: {recommended[0]:.0f}° - {recommended[1]:.0f}°")
        print(f"  {advice.comment}")
        for recommendation in advice.recommendations:
            print(f"  ⚠️  {recommendation}")


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Running Pose Analyzer - joint angles and coaching feedback',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('video', type=str, help='Path to video file')
    parser.add_argument('--output', type=str, default=config.OUTPUT_PATH,
                        help='Path of the annotated output video')
    parser.add_argument('--no-video', action='store_true',
                        help='Skip writing the annotated video')
    parser.add_argument('--stride', type=int, default=config.FRAME_STRIDE,
                        help='Analyze every Nth frame')
    parser.add_argument('--workers', type=int, default=config.NUM_WORKERS,
                        help='Threads used for pose inference')
    parser.add_argument('--timeout', type=float, default=config.TIMEOUT_SECONDS,
                        help='Stop the analysis after this many seconds')
    parser.add_argument('--model', type=str, default=config.YOLOV8_POSE_MODEL,
                        help='YOLOv8-Pose model')
    parser.add_argument('--thresholds', type=str, default=str(config.ADVISORY_CONFIG_PATH),
                        help='Advisory thresholds YAML')
    parser.add_argument('--skip-validation', action='store_true',
                        help='Skip the single-person check')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(levelname)s:%(name)s:%(message)s'
    )

    try:
        video = VideoDecoder().decode(args.video)
    except DecodeError as e:
        print(f"Error: {e}")
        print(FAILURE_MESSAGES[FailureKind.DECODE])
        return 1

    if not args.skip_validation:
        print(f"Validating video: {args.video}")
        if not validate_video(video):
            return 2

    engine = AdvisoryEngine.from_yaml(args.thresholds)
    pose_estimator = PoseEstimator(model_path=args.model, device=config.YOLOV8_DEVICE)

    pipeline = FrameAnalysisPipeline(
        pose_model=pose_estimator,
        encoder=None if args.no_video else VideoEncoder(
            fourcc=config.OUTPUT_FOURCC,
            queue_size=config.ENCODER_QUEUE_SIZE
        ),
        detection_threshold=config.DETECTION_CONFIDENCE,
        keypoint_threshold=config.KEYPOINT_CONFIDENCE,
        frame_stride=args.stride,
        num_workers=args.workers,
        keep_undetected_frames=config.KEEP_UNDETECTED_FRAMES,
        timeout=args.timeout,
        default_fps=config.OUTPUT_FPS,
        show_progress=True
    )

    try:
        print(f"Processing video: {args.video}")
        result = pipeline.analyze_decoded(
            video,
            output_path=None if args.no_video else args.output
        )
    finally:
        pose_estimator.close()

    print_report(result, engine)
    return 0 if result.succeeded else 1


if __name__ == '__main__':
    sys.exit(main())
