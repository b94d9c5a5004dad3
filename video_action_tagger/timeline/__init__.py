"""Windowing and segment-merging core.

This package splits a video timeline into overlapping sampling windows and
reduces per-window label probabilities back into contiguous segments. It has
no media or model dependencies.
"""

from .merge import (
    MergeState,
    OpenSegment,
    SegmentMerger,
    advance,
    finalize_segments,
    flush,
    merge_detections,
)
from .models import ProbabilityMap, Segment, TaggingResult, TimeRange, Window
from .windows import WindowSequence, count_windows, enumerate_windows, sample_timestamps

__all__ = [
    "MergeState",
    "OpenSegment",
    "ProbabilityMap",
    "Segment",
    "SegmentMerger",
    "TaggingResult",
    "TimeRange",
    "Window",
    "WindowSequence",
    "advance",
    "count_windows",
    "enumerate_windows",
    "finalize_segments",
    "flush",
    "merge_detections",
    "sample_timestamps",
]
