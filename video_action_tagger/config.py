"""Configuration dataclasses for the tagging pipeline.

This module groups related settings so the per-video processor receives a
handful of objects instead of a long parameter list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from video_action_tagger.formatting import DEFAULT_FORMATS
from video_action_tagger.utils.constant import (
    DEFAULT_CLASSIFY_WORKERS,
    DEFAULT_MIN_SEGMENT_SEC,
    DEFAULT_SAMPLES_PER_WINDOW,
    DEFAULT_STRIDE_SEC,
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_SEC,
    DEFAULT_WRITE_FILE_TAGS,
)


@dataclass
class WindowConfig:
    """Groups window sampling settings.

    Attributes:
        window_sec: Length of each window in seconds.
        stride_sec: Offset between consecutive window starts in seconds.
        samples_per_window: Frames sampled uniformly across each window.
        workers: Threads used to run the classifier (1 = inline).

    """

    window_sec: float = DEFAULT_WINDOW_SEC
    stride_sec: float = DEFAULT_STRIDE_SEC
    samples_per_window: int = DEFAULT_SAMPLES_PER_WINDOW
    workers: int = DEFAULT_CLASSIFY_WORKERS


@dataclass
class MergeConfig:
    """Groups segment merging settings.

    Attributes:
        threshold: Minimum per-label probability for a detection.
        min_segment_sec: Shortest merged segment kept in the output.

    """

    threshold: float = DEFAULT_THRESHOLD
    min_segment_sec: float = DEFAULT_MIN_SEGMENT_SEC


@dataclass
class OutputConfig:
    """Groups output-related settings.

    Attributes:
        output_dir: Directory to store output files.
        output_formats: Formats written for every video.
        output_template: Filename template for outputs.
        overwrite: Overwrite existing files when ``True``.
        write_tags: Attach detected labels to the source video as file tags.

    """

    output_dir: Path
    output_formats: tuple[str, ...] = field(default_factory=lambda: DEFAULT_FORMATS)
    output_template: str = "{filename}"
    overwrite: bool = False
    write_tags: bool = DEFAULT_WRITE_FILE_TAGS


@dataclass
class UIConfig:
    """Groups UI and logging settings.

    Attributes:
        verbose: Enable detailed diagnostic output.
        quiet: Suppress non-error output.
        no_progress: Disable progress bars.

    """

    verbose: bool = False
    quiet: bool = False
    no_progress: bool = False
