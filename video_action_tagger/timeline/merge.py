"""Reduce per-window label probabilities into merged, scored segments.

The merger is a left fold over ``(window range, probabilities)`` pairs in
non-decreasing window-start order. For every label it keeps at most one
*open* segment:

* a window whose probability for the label reaches the threshold and whose
  start is not after the open segment's end (the windows touch or overlap)
  extends the open segment to the window's end and updates its score with
  the running two-point average ``score = (score + p) / 2``;
* a qualifying window after a strict gap closes the open segment and opens a
  new one at the window;
* windows where the label is missing or below threshold leave it untouched.

At the end of the stream every open segment is closed, segments shorter than
the minimum duration are dropped and the rest are sorted by
``(start, label)``.

The score recurrence weights recent windows more heavily than a true mean
would; callers relying on reproducible scores must keep it as is.
"""

from __future__ import annotations

import functools
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from video_action_tagger.timeline.models import ProbabilityMap, Segment, TimeRange

__all__ = [
    "MergeState",
    "OpenSegment",
    "SegmentMerger",
    "advance",
    "finalize_segments",
    "flush",
    "merge_detections",
]


@dataclass(frozen=True)
class OpenSegment:
    """A segment still accepting windows for its label."""

    label: str
    start: float
    end: float
    score: float

    def extend(self, end: float, probability: float) -> OpenSegment:
        """Return this segment stretched to ``end`` with the smoothed score."""
        return OpenSegment(
            label=self.label,
            start=self.start,
            end=end,
            score=(self.score + probability) / 2.0,
        )

    def to_segment(self) -> Segment:
        """Freeze into an output :class:`Segment`."""
        return Segment(label=self.label, start=self.start, end=self.end, score=self.score)


@dataclass(frozen=True)
class MergeState:
    """Accumulator threaded through the fold.

    Attributes:
        open: Open segment per label.
        closed: Segments closed by a gap, as a linked chain
            ``(newest, (older, (..., ())))`` so folding in a window never copies
            earlier segments. Use :attr:`closed_segments` to read them.
        last_start: Start of the last window folded in, used to reject
            out-of-order input.
    """

    open: Mapping[str, OpenSegment] = field(default_factory=dict)
    closed: tuple = ()
    last_start: float | None = None

    @property
    def closed_segments(self) -> tuple[OpenSegment, ...]:
        """Segments closed so far, in closing order."""
        newest_first: list[OpenSegment] = []
        node = self.closed
        while node:
            segment, node = node
            newest_first.append(segment)
        return tuple(reversed(newest_first))


def _check_probability(label: str, probability: float) -> None:
    if math.isnan(probability) or not 0.0 <= probability <= 1.0:
        raise ValueError(f"probability for {label!r} must lie in [0, 1], got {probability}")


def advance(
    state: MergeState,
    window: TimeRange,
    probabilities: ProbabilityMap,
    threshold: float,
) -> MergeState:
    """Fold one window into ``state`` and return the new state.

    ``state`` itself is left unchanged.

    Raises:
        ValueError: If the window starts before the previously folded one or a
            probability is outside ``[0, 1]``.
    """
    if state.last_start is not None and window.start < state.last_start:
        raise ValueError(
            f"windows must arrive in start order: {window.start} after {state.last_start}"
        )

    opened = dict(state.open)
    closed = state.closed
    for label in sorted(probabilities):
        probability = float(probabilities[label])
        _check_probability(label, probability)
        if probability < threshold:
            continue
        current = opened.get(label)
        if current is not None and current.end >= window.start:
            opened[label] = current.extend(window.end, probability)
            continue
        if current is not None:
            closed = (current, closed)
        opened[label] = OpenSegment(
            label=label, start=window.start, end=window.end, score=probability
        )

    return MergeState(open=opened, closed=closed, last_start=window.start)


def flush(state: MergeState) -> tuple[OpenSegment, ...]:
    """Close every open segment and return all segments of ``state``."""
    return state.closed_segments + tuple(state.open[label] for label in sorted(state.open))


def finalize_segments(candidates: Iterable[OpenSegment], min_duration: float) -> list[Segment]:
    """Drop segments shorter than ``min_duration`` and order the rest by ``(start, label)``."""
    kept = [seg for seg in candidates if (seg.end - seg.start) >= min_duration]
    kept.sort(key=lambda seg: (seg.start, seg.label))
    return [seg.to_segment() for seg in kept]


def _validate_params(threshold: float, min_duration: float) -> None:
    if math.isnan(threshold) or not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must lie in [0, 1], got {threshold}")
    if not min_duration > 0:
        raise ValueError(f"min_duration must be > 0, got {min_duration}")


def merge_detections(
    detections: Iterable[tuple[TimeRange, ProbabilityMap]],
    *,
    threshold: float,
    min_duration: float,
) -> list[Segment]:
    """Merge an ordered detection stream into filtered, sorted segments.

    Parameters:
        detections: ``(window range, probabilities)`` pairs in non-decreasing
            window-start order. Consumed lazily; a stream that ends early is
            flushed where it stops.
        threshold: Minimum probability ``τ`` in ``[0, 1]`` for a detection.
        min_duration: Minimum segment length ``δ`` in seconds (> 0).

    Returns:
        list[Segment]: Segments sorted by start, ties broken by label.

    Raises:
        ValueError: On invalid parameters, out-of-order windows or
            out-of-range probabilities.
    """
    _validate_params(threshold, min_duration)
    state = functools.reduce(
        lambda acc, item: advance(acc, item[0], item[1], threshold),
        detections,
        MergeState(),
    )
    return finalize_segments(flush(state), min_duration)


@dataclass(frozen=True)
class SegmentMerger:
    """Merge settings bound into a reusable callable."""

    threshold: float
    min_duration: float

    def __post_init__(self) -> None:
        _validate_params(self.threshold, self.min_duration)

    def __call__(self, detections: Iterable[tuple[TimeRange, ProbabilityMap]]) -> list[Segment]:
        return merge_detections(
            detections, threshold=self.threshold, min_duration=self.min_duration
        )
