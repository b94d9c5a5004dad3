"""Utility helpers for tagging runs."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from video_action_tagger.timeline.windows import count_windows
from video_action_tagger.video.source import OpenCVVideoSource, VideoDecodeError

logger = logging.getLogger(__name__)


def probe_duration(video_path: Path) -> float | None:
    """Return the duration of ``video_path`` in seconds, or ``None`` if unreadable."""
    try:
        with OpenCVVideoSource(video_path) as source:
            return source.duration
    except VideoDecodeError as exc:
        logger.debug(f"Probe failed for {video_path}: {exc}")
        return None


def compute_total_windows(
    video_files: Sequence[Path],
    window_sec: float,
    stride_sec: float,
) -> int:
    """Return the total number of windows across ``video_files``.

    Unreadable videos count as zero windows; they fail again, and are
    reported, when processed.

    Args:
        video_files: Video paths to process.
        window_sec: Window length in seconds.
        stride_sec: Window stride in seconds.

    Returns:
        The total number of windows to classify.

    """
    total = 0
    for path in video_files:
        duration = probe_duration(path)
        if duration is not None:
            total += count_windows(duration, window_sec, stride_sec)
    return total
