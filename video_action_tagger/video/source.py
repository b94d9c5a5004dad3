"""Video source capability backed by OpenCV.

The pipeline only needs two things from a video: its duration and a way to
grab an RGB frame at a timestamp. :class:`VideoSource` is that narrow
interface; :class:`OpenCVVideoSource` implements it with ``cv2.VideoCapture``.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from types import TracebackType
from typing import Protocol

import cv2
import numpy as np

from video_action_tagger.timeline.models import Window

logger = logging.getLogger(__name__)

__all__ = [
    "Frame",
    "FrameDecodeError",
    "OpenCVVideoSource",
    "VideoDecodeError",
    "VideoSource",
    "sample_window_frames",
]

# H x W x 3 uint8 RGB image.
Frame = np.ndarray


class VideoDecodeError(RuntimeError):
    """The video cannot be opened or its duration cannot be determined."""


class FrameDecodeError(VideoDecodeError):
    """A single frame could not be decoded."""


class VideoSource(Protocol):
    """Duration plus random-access frame extraction."""

    @property
    def duration(self) -> float:
        """Total duration in seconds."""

    def extract(self, timestamp: float) -> Frame:
        """Return the frame shown at ``timestamp`` seconds.

        Raises:
            FrameDecodeError: If the timestamp is out of range or undecodable.
        """


class OpenCVVideoSource:
    """Read frames from a video file with OpenCV.

    A capture handle is not thread-safe; call :meth:`extract` from one thread.
    """

    def __init__(self, path: Path | str) -> None:
        """Open ``path`` and probe its duration.

        Raises:
            VideoDecodeError: If the file cannot be opened or reports no usable
                frame rate / frame count.
        """
        self.path = Path(path)
        self._capture = cv2.VideoCapture(str(self.path))
        if not self._capture.isOpened():
            self._capture.release()
            raise VideoDecodeError(f"Cannot open video: {self.path}")

        fps = float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)
        frame_count = float(self._capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0)
        duration = frame_count / fps if fps > 0 else float("nan")
        if not math.isfinite(duration) or duration <= 0:
            self._capture.release()
            raise VideoDecodeError(
                f"Cannot determine duration of {self.path.name} (fps={fps}, frames={frame_count})"
            )
        self.fps = fps
        self.frame_count = int(frame_count)
        self._duration = duration

    @property
    def duration(self) -> float:
        """Total duration in seconds (frame count / fps)."""
        return self._duration

    def extract(self, timestamp: float) -> Frame:
        """Decode the frame at ``timestamp`` seconds as an RGB array.

        Raises:
            FrameDecodeError: If ``timestamp`` lies outside the video or the
                frame cannot be read.
        """
        if not 0.0 <= timestamp <= self._duration:
            raise FrameDecodeError(
                f"timestamp {timestamp:.3f}s outside [0, {self._duration:.3f}]s"
            )
        # The final timestamp of a window may equal the duration; read the last frame.
        index = min(int(round(timestamp * self.fps)), self.frame_count - 1)
        if not self._capture.set(cv2.CAP_PROP_POS_FRAMES, index):
            raise FrameDecodeError(f"seek to frame {index} failed in {self.path.name}")
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise FrameDecodeError(f"no frame at {timestamp:.3f}s in {self.path.name}")
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def close(self) -> None:
        """Release the underlying capture handle."""
        self._capture.release()

    def __enter__(self) -> OpenCVVideoSource:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def sample_window_frames(source: VideoSource, window: Window) -> list[Frame]:
    """Extract the frames of ``window``, skipping samples that fail to decode.

    Returns:
        Frames in timestamp order; possibly empty.
    """
    frames: list[Frame] = []
    for ts in window.timestamps:
        try:
            frames.append(source.extract(ts))
        except FrameDecodeError as exc:
            logger.debug(f"Dropping sample at {ts:.3f}s: {exc}")
    return frames
