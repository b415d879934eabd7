"""
Video Analyzer
Runs the per-frame angle pipeline over a recorded clip.

State machine: IDLE -> PROCESSING -> DONE | FAILED

Per frame:
  pose model -> detection gate -> vertical reference point -> 6 angles
  -> range trackers -> optional annotated frame

Frame-level problems (no detection, low-confidence keypoints) only skip
readings. Decode/encode failures, cancellation and timeouts end the run as
FAILED, and the ranges observed up to that point stay available.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from pipeline.errors import DecodeError, EncodeError
from pipeline.step1_frame_capture import DecodedVideo, VideoDecoder, subsample
from pipeline.step4_range_tracker import AngleRange, RangeTrackerSet
from pipeline.step5_advisory import AdvisoryEngine, AdvisoryResult
from pipeline.step6_video_encoder import VideoEncoder
from utils.angle_calculator import AngleCalculator, AngleCategory
from utils.pose_types import FrameDetection
from utils.visualization import render_frame

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    FAILED = "FAILED"


class FailureKind(Enum):
    DECODE = "decode"
    ENCODE = "encode"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


FAILURE_MESSAGES = {
    FailureKind.DECODE: "The video could not be read. Please record or import the clip again.",
    FailureKind.ENCODE: "The annotated video could not be created. Angle results are still shown.",
    FailureKind.CANCELLED: "Analysis was cancelled. Results cover the frames processed so far.",
    FailureKind.TIMEOUT: "Analysis took too long and was stopped. Results cover the frames processed so far.",
}


@dataclass
class AnalysisResult:
    """Outcome of one pipeline run."""
    state: PipelineState
    ranges: Dict[AngleCategory, Optional[AngleRange]]
    total_frames_processed: int = 0
    frames_with_detection: int = 0
    output_path: Optional[Path] = None
    annotated_frames: List[np.ndarray] = field(default_factory=list)
    failure_kind: Optional[FailureKind] = None
    failure_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.DONE

    @property
    def user_message(self) -> Optional[str]:
        if self.failure_kind is None:
            return None
        return FAILURE_MESSAGES[self.failure_kind]

    def advisories(
        self,
        engine: AdvisoryEngine,
        head_tilt_range: Optional[Tuple[float, float]] = None
    ) -> Dict[AngleCategory, AdvisoryResult]:
        return {
            category: engine.advise_range(category, angle_range, head_tilt_range)
            for category, angle_range in self.ranges.items()
        }


Renderer = Callable[..., np.ndarray]

# Marker for frames skipped after cancellation/timeout
_SKIPPED = object()


class FrameAnalysisPipeline:
    """Offline angle analysis of a single runner video."""

    def __init__(
        self,
        pose_model,
        decoder: Optional[VideoDecoder] = None,
        encoder: Optional[VideoEncoder] = None,
        renderer: Optional[Renderer] = render_frame,
        detection_threshold: float = 0.5,
        keypoint_threshold: float = 0.5,
        frame_stride: int = 2,
        num_workers: int = 1,
        keep_undetected_frames: bool = True,
        timeout: Optional[float] = None,
        default_fps: float = 30.0,
        show_progress: bool = False
    ):
        """
        Initialize the pipeline.

        Args:
            pose_model: Object with `estimate(image) -> Optional[FrameDetection]`
            decoder: Video decoder (default: VideoDecoder)
            encoder: Video encoder; None keeps annotated frames in the result
            renderer: `renderer(image, bbox, keypoints, readings) -> image`;
                None disables annotation
            detection_threshold: Detection confidence required for a person
            keypoint_threshold: Keypoint confidence required for geometry
            frame_stride: Decimation applied by analyze_video()
            num_workers: Threads for pose inference (1 = sequential)
            keep_undetected_frames: Pass frames without a detection through
            timeout: Seconds before the run is stopped (None = unlimited)
            default_fps: Output fps when the source fps is unknown
            show_progress: Show a tqdm progress bar
        """
        if frame_stride < 1:
            raise ValueError(f"frame_stride must be >= 1, got {frame_stride}")

        self.pose_model = pose_model
        self.decoder = decoder or VideoDecoder()
        self.encoder = encoder
        self.renderer = renderer
        self.detection_threshold = detection_threshold
        self.keypoint_threshold = keypoint_threshold
        self.frame_stride = frame_stride
        self.num_workers = max(1, int(num_workers))
        self.keep_undetected_frames = keep_undetected_frames
        self.timeout = timeout
        self.default_fps = default_fps
        self.show_progress = show_progress

        self.trackers = RangeTrackerSet()
        self.state = PipelineState.IDLE

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def analyze_video(
        self,
        video_path: str,
        output_path: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AnalysisResult:
        """Decode, decimate and analyze a video file."""
        self._start()
        try:
            video = self.decoder.decode(video_path)
        except DecodeError as e:
            logger.error("Decoding failed: %s", e)
            return self._fail(FailureKind.DECODE, str(e))
        return self.analyze_decoded(video, output_path, cancel_event)

    def analyze_decoded(
        self,
        video: DecodedVideo,
        output_path: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AnalysisResult:
        """Decimate and analyze a clip that was already decoded."""
        self._start()
        frames = subsample(video.frames, self.frame_stride)
        fps = (video.fps / self.frame_stride) if video.fps and video.fps > 0 else None
        return self._run(frames, fps, output_path, cancel_event)

    def analyze_frames(
        self,
        frames: Sequence[np.ndarray],
        fps: Optional[float] = None,
        output_path: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> AnalysisResult:
        """Analyze already decoded (and decimated) frames in order."""
        self._start()
        return self._run(list(frames), fps, output_path, cancel_event)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start(self) -> None:
        self.trackers.reset()
        self.state = PipelineState.PROCESSING

    def _result(self, state: PipelineState, **kwargs) -> AnalysisResult:
        self.state = state
        return AnalysisResult(state=state, ranges=self.trackers.ranges(), **kwargs)

    def _fail(self, kind: FailureKind, reason: str, **kwargs) -> AnalysisResult:
        return self._result(PipelineState.FAILED, failure_kind=kind,
                            failure_reason=reason, **kwargs)

    def _abort_reason(
        self,
        cancel_event: Optional[threading.Event],
        deadline: Optional[float]
    ) -> Optional[FailureKind]:
        if cancel_event is not None and cancel_event.is_set():
            return FailureKind.CANCELLED
        if deadline is not None and time.monotonic() >= deadline:
            return FailureKind.TIMEOUT
        return None

    def detect(self, frame: np.ndarray) -> Optional[FrameDetection]:
        """Run the pose model and apply the person-present gate."""
        try:
            detection = self.pose_model.estimate(frame)
        except Exception as e:
            logger.warning("Pose inference failed, skipping frame: %s", e, exc_info=True)
            return None
        if detection is None or detection.detection_confidence <= self.detection_threshold:
            return None
        return detection

    def analyze_frame(self, frame: np.ndarray) -> Tuple[Optional[np.ndarray], bool]:
        """
        Process one frame and feed its readings into the trackers.

        Returns:
            (output frame or None, whether a person was detected)
        """
        detection = self.detect(frame)
        if detection is None:
            return (frame if self.keep_undetected_frames else None), False

        keypoints = AngleCalculator.add_reference_point(
            detection.keypoints, self.keypoint_threshold
        )
        readings = AngleCalculator.calculate_all_angles(keypoints, self.keypoint_threshold)
        self.trackers.observe_all(readings)

        if self.renderer is None:
            return frame, True
        try:
            return self.renderer(frame, detection.bbox, keypoints, readings), True
        except Exception as e:
            logger.warning("Rendering failed, keeping raw frame: %s", e, exc_info=True)
            return frame, True

    def _process_all(
        self,
        frames: List[np.ndarray],
        cancel_event: Optional[threading.Event],
        deadline: Optional[float]
    ) -> Tuple[List[object], Optional[FailureKind]]:
        # Index-addressed so the output keeps input order with any worker count
        outputs: List[object] = [_SKIPPED] * len(frames)

        def task(index: int):
            if self._abort_reason(cancel_event, deadline) is not None:
                return index, _SKIPPED
            return index, self.analyze_frame(frames[index])

        progress = tqdm(total=len(frames), desc="Analyzing", unit="frame",
                        disable=not self.show_progress)
        try:
            if self.num_workers == 1:
                for index in range(len(frames)):
                    _, outputs[index] = task(index)
                    if outputs[index] is _SKIPPED:
                        break
                    progress.update(1)
            else:
                with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
                    futures = [executor.submit(task, index) for index in range(len(frames))]
                    for future in as_completed(futures):
                        if future.cancelled():
                            continue
                        index, outcome = future.result()
                        outputs[index] = outcome
                        if outcome is _SKIPPED:
                            for pending in futures:
                                pending.cancel()
                        else:
                            progress.update(1)
        finally:
            progress.close()

        failure = None
        if any(outcome is _SKIPPED for outcome in outputs):
            failure = self._abort_reason(cancel_event, deadline) or FailureKind.CANCELLED
        return outputs, failure

    def _run(
        self,
        frames: List[np.ndarray],
        fps: Optional[float],
        output_path: Optional[str],
        cancel_event: Optional[threading.Event]
    ) -> AnalysisResult:
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        logger.info("Analyzing %d frames with %d worker(s)", len(frames), self.num_workers)

        outputs, failure = self._process_all(frames, cancel_event, deadline)
        processed = [outcome for outcome in outputs if outcome is not _SKIPPED]
        counts = dict(
            total_frames_processed=len(processed),
            frames_with_detection=sum(1 for _, hit in processed if hit),
        )
        annotated = [image for image, _ in processed if image is not None]

        if failure is not None:
            logger.warning("Analysis stopped (%s) after %d frames",
                           failure.value, counts['total_frames_processed'])
            return self._fail(failure, failure.value, **counts)

        logger.info("Processed %d frames, person detected in %d",
                    counts['total_frames_processed'], counts['frames_with_detection'])

        if self.encoder is None or output_path is None:
            return self._result(PipelineState.DONE, annotated_frames=annotated, **counts)

        try:
            video_path = self.encoder.encode(annotated, output_path, fps or self.default_fps)
        except EncodeError as e:
            logger.error("Encoding failed: %s", e)
            return self._fail(FailureKind.ENCODE, str(e), **counts)

        return self._result(PipelineState.DONE, output_path=video_path, **counts)
