"""Sliding-window enumeration over a video timeline.

Windows of fixed length start at ``0, S, 2S, ...`` for as long as they fit
inside the video. Each window carries ``N`` sample timestamps spread
uniformly over the window, both edges included.

The logic is kept free of any OpenCV or torch imports so that it can be
tested with synthetic durations only.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

from video_action_tagger.timeline.models import Window

__all__ = [
    "WindowSequence",
    "count_windows",
    "enumerate_windows",
    "sample_timestamps",
]

# Absolute slack (seconds) for the "window fits" comparison, so decimal strides
# such as 0.1 do not lose their last window to float rounding.
_FIT_EPSILON = 1e-9


def _validate(duration: float, window_sec: float, stride_sec: float, samples_per_window: int) -> None:
    if not math.isfinite(duration) or duration <= 0:
        raise ValueError(f"duration must be finite and > 0, got {duration}")
    if not math.isfinite(window_sec) or window_sec <= 0:
        raise ValueError(f"window_sec must be > 0, got {window_sec}")
    if not math.isfinite(stride_sec) or stride_sec <= 0:
        raise ValueError(f"stride_sec must be > 0, got {stride_sec}")
    if samples_per_window < 1:
        raise ValueError(f"samples_per_window must be >= 1, got {samples_per_window}")


def count_windows(duration: float, window_sec: float, stride_sec: float) -> int:
    """Return ``floor((D - W) / S) + 1`` when ``D >= W``, else ``0``.

    Raises:
        ValueError: If any argument is non-finite or not strictly positive.
    """
    _validate(duration, window_sec, stride_sec, 1)
    span = duration - window_sec
    if span < -_FIT_EPSILON:
        return 0
    return math.floor((max(span, 0.0) + _FIT_EPSILON) / stride_sec) + 1


def sample_timestamps(start: float, window_sec: float, samples_per_window: int) -> tuple[float, ...]:
    """Spread ``samples_per_window`` timestamps uniformly over ``[start, start + window_sec]``.

    A single sample sits at the window start.
    """
    if samples_per_window == 1:
        return (start,)
    last = samples_per_window - 1
    return tuple(start + (i / last) * window_sec for i in range(samples_per_window))


def enumerate_windows(
    duration: float,
    window_sec: float,
    stride_sec: float,
    samples_per_window: int,
) -> Iterator[Window]:
    """Lazily yield the sampling windows of a video.

    Parameters:
        duration (float): Total video duration in seconds (finite, > 0).
        window_sec (float): Window length ``W`` in seconds (> 0).
        stride_sec (float): Offset ``S`` between consecutive window starts (> 0).
        samples_per_window (int): Number of sample timestamps per window (>= 1).

    Yields:
        Window: Windows ordered by start time. Nothing is yielded when the
            video is shorter than one window.

    Raises:
        ValueError: If an argument violates its precondition. The check runs
            eagerly, before the first window is requested.
    """
    _validate(duration, window_sec, stride_sec, samples_per_window)
    total = count_windows(duration, window_sec, stride_sec)
    return _generate(total, window_sec, stride_sec, samples_per_window)


def _generate(total: int, window_sec: float, stride_sec: float, samples_per_window: int) -> Iterator[Window]:
    for k in range(total):
        # Multiply rather than accumulate so start times do not drift.
        start = k * stride_sec
        yield Window(
            start=start,
            end=start + window_sec,
            timestamps=sample_timestamps(start, window_sec, samples_per_window),
        )


@dataclass(frozen=True)
class WindowSequence:
    """Restartable, sized view over :func:`enumerate_windows`.

    Every iteration starts a fresh generator, so one instance can be consumed
    any number of times (for progress planning and for classification).
    """

    duration: float
    window_sec: float
    stride_sec: float
    samples_per_window: int

    def __post_init__(self) -> None:
        _validate(self.duration, self.window_sec, self.stride_sec, self.samples_per_window)

    def __iter__(self) -> Iterator[Window]:
        return enumerate_windows(
            self.duration, self.window_sec, self.stride_sec, self.samples_per_window
        )

    def __len__(self) -> int:
        return count_windows(self.duration, self.window_sec, self.stride_sec)
