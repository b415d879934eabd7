"""
Step 6: Video Encoder
Writes annotated frames back into a video file, preserving frame order.

Frames are handed to a writer thread through a bounded queue, so the
producer blocks while the writer is busy instead of polling it.
"""

import logging
import threading
from pathlib import Path
from queue import Queue
from typing import List, Sequence

import cv2
import numpy as np

from pipeline.errors import EncodeError

logger = logging.getLogger(__name__)

_END = object()


class VideoEncoder:
    """Encoder collaborator: ordered frames -> video file."""

    def __init__(self, fourcc: str = "mp4v", queue_size: int = 8):
        self.fourcc = fourcc
        self.queue_size = queue_size

    def _open_writer(self, output_path: Path, fps: float, size) -> cv2.VideoWriter:
        writer = cv2.VideoWriter(
            str(output_path),
            cv2.VideoWriter_fourcc(*self.fourcc),
            fps,
            size
        )
        if not writer.isOpened():
            raise EncodeError(f"Cannot open video writer for {output_path}")
        return writer

    def encode(
        self,
        frames: Sequence[np.ndarray],
        output_path: str,
        fps: float = 30.0
    ) -> Path:
        """
        Encode frames in the given order.

        Args:
            frames: Ordered BGR frames; all are resized to the first frame's size
            output_path: Destination file, parent directories are created
            fps: Output frame rate

        Returns:
            Path of the written video

        Raises:
            EncodeError: on empty input or any writer failure
        """
        if not frames:
            raise EncodeError("No frames to encode")
        if fps <= 0:
            raise EncodeError(f"Invalid output fps: {fps}")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if output_path.exists():
            output_path.unlink()

        h, w = frames[0].shape[:2]
        writer = self._open_writer(output_path, fps, (w, h))

        frame_queue: Queue = Queue(maxsize=self.queue_size)
        errors: List[BaseException] = []

        def write_loop():
            while True:
                item = frame_queue.get()
                if item is _END:
                    break
                if errors:
                    continue  # drain so the producer never blocks forever
                try:
                    if item.shape[:2] != (h, w):
                        item = cv2.resize(item, (w, h))
                    writer.write(item)
                except (cv2.error, AttributeError) as e:
                    errors.append(e)

        thread = threading.Thread(target=write_loop, name="video-encoder", daemon=True)
        thread.start()
        try:
            for frame in frames:
                frame_queue.put(frame)
        finally:
            frame_queue.put(_END)
            thread.join()
            writer.release()

        if errors:
            raise EncodeError(f"Failed to write video {output_path}: {errors[0]}")
        if not output_path.exists() or output_path.stat().st_size == 0:
            raise EncodeError(f"Video writer produced no output at {output_path}")

        logger.info("Wrote %d frames to %s", len(frames), output_path)
        return output_path
