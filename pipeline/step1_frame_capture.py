"""
Step 1: Frame Capture
Decodes a recorded running clip into an ordered list of frames.
"""

import logging
import cv2
import numpy as np
from dataclasses import dataclass, field
from typing import Generator, List, Optional, Tuple

from pipeline.errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass
class DecodedVideo:
    """Frames of a video in their original order."""
    frames: List[np.ndarray] = field(default_factory=list)
    fps: float = 0.0
    width: int = 0
    height: int = 0

    def __len__(self) -> int:
        return len(self.frames)


class VideoCapture:
    """Capture frames from video file."""

    def __init__(self, video_path: str):
        self.video_path = str(video_path)
        self.cap = cv2.VideoCapture(self.video_path)
        self.total_frames = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self.fps = self.cap.get(cv2.CAP_PROP_FPS)
        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.current_frame = 0

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        ret, frame = self.cap.read()
        if ret:
            self.current_frame += 1
        return ret, frame

    def release(self) -> None:
        self.cap.release()

    def is_opened(self) -> bool:
        return self.cap.isOpened()

    def frames(self) -> Generator[np.ndarray, None, None]:
        """Generator that yields frames."""
        while self.is_opened():
            ret, frame = self.read()
            if not ret:
                break
            yield frame
        self.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class VideoDecoder:
    """Decoder collaborator: video file -> ordered frames."""

    def decode(self, video_path: str) -> DecodedVideo:
        """
        Read every frame of the video.

        Raises:
            DecodeError: if the file cannot be opened or yields no frames
        """
        with VideoCapture(video_path) as capture:
            if not capture.is_opened():
                raise DecodeError(f"Cannot open video: {video_path}")
            fps, width, height = capture.fps, capture.width, capture.height
            frames = list(capture.frames())

        if not frames:
            raise DecodeError(f"No frames could be extracted from {video_path}")

        logger.info("Decoded %d frames (%dx%d @ %.1f fps) from %s",
                    len(frames), width, height, fps, video_path)
        return DecodedVideo(frames=frames, fps=fps, width=width, height=height)


def subsample(frames: List[np.ndarray], stride: int) -> List[np.ndarray]:
    """Keep every `stride`-th frame, starting with the first."""
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got {stride}")
    return list(frames[::stride])
