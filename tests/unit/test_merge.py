"""Unit tests for the segment merger.

These tests validate extension versus split at window boundaries, the
running two-point score recurrence, minimum-duration filtering, output
ordering and input validation.
"""

from __future__ import annotations

import random

import pytest

from video_action_tagger.timeline.merge import (
    MergeState,
    OpenSegment,
    SegmentMerger,
    advance,
    finalize_segments,
    flush,
    merge_detections,
)
from video_action_tagger.timeline.models import TimeRange
from video_action_tagger.timeline.windows import enumerate_windows


def _rng(start: float, end: float) -> TimeRange:
    return TimeRange(start=start, end=end)


def test_concrete_scenario_single_segment() -> None:
    """Label X at 0.7 in windows 0, 1, 2 merges into one 0–5 s segment."""
    stream = []
    for window in enumerate_windows(10.0, 3.0, 1.0, 8):
        p = 0.7 if window.start < 3 else 0.2
        stream.append((window.time_range, {"X": p}))

    segments = merge_detections(stream, threshold=0.6, min_duration=1.5)

    assert len(segments) == 1
    seg = segments[0]
    assert (seg.label, seg.start, seg.end) == ("X", 0.0, 5.0)
    assert seg.score == pytest.approx(0.7)


def test_score_is_running_two_point_average() -> None:
    """Scores follow score = (score + p) / 2, not the arithmetic mean."""
    stream = [
        (_rng(0.0, 3.0), {"a": 0.6}),
        (_rng(3.0, 6.0), {"a": 0.8}),
        (_rng(6.0, 9.0), {"a": 0.9}),
    ]
    [seg] = merge_detections(stream, threshold=0.5, min_duration=1.0)
    assert seg.score == pytest.approx(0.8)
    assert seg.score != pytest.approx((0.6 + 0.8 + 0.9) / 3)


def test_touching_windows_merge() -> None:
    """A window starting exactly at the open segment's end extends it."""
    stream = [(_rng(0.0, 3.0), {"a": 0.9}), (_rng(3.0, 6.0), {"a": 0.9})]
    segments = merge_detections(stream, threshold=0.5, min_duration=1.0)
    assert [(s.start, s.end) for s in segments] == [(0.0, 6.0)]


def test_overlapping_windows_merge() -> None:
    """Overlapping qualifying windows extend the open segment."""
    stream = [(_rng(0.0, 3.0), {"a": 0.9}), (_rng(1.0, 4.0), {"a": 0.7})]
    [seg] = merge_detections(stream, threshold=0.5, min_duration=1.0)
    assert (seg.start, seg.end) == (0.0, 4.0)
    assert seg.score == pytest.approx(0.8)


def test_strict_gap_splits() -> None:
    """A qualifying window after a strict gap starts a new segment."""
    stream = [(_rng(0.0, 3.0), {"a": 0.9}), (_rng(3.5, 6.5), {"a": 0.8})]
    segments = merge_detections(stream, threshold=0.5, min_duration=1.0)
    assert [(s.start, s.end, s.score) for s in segments] == [
        (0.0, 3.0, 0.9),
        (3.5, 6.5, 0.8),
    ]


def test_sub_threshold_window_does_not_end_run() -> None:
    """A weak window inside overlapping coverage leaves the run open."""
    stream = [
        (_rng(0.0, 3.0), {"a": 0.9}),
        (_rng(1.0, 4.0), {"a": 0.1}),
        (_rng(2.0, 5.0), {"a": 0.7}),
    ]
    [seg] = merge_detections(stream, threshold=0.5, min_duration=1.0)
    assert (seg.start, seg.end) == (0.0, 5.0)
    assert seg.score == pytest.approx(0.8)


def test_missing_label_leaves_segment_open_until_gap() -> None:
    """Absent labels are untouched; only a later strict gap closes the run."""
    stream = [
        (_rng(0.0, 1.0), {"a": 0.9}),
        (_rng(1.0, 2.0), {"b": 0.9}),
        (_rng(2.0, 3.0), {"a": 0.9, "b": 0.9}),
    ]
    segments = merge_detections(stream, threshold=0.5, min_duration=0.5)
    assert [(s.label, s.start, s.end) for s in segments] == [
        ("a", 0.0, 1.0),
        ("b", 1.0, 3.0),
        ("a", 2.0, 3.0),
    ]


def test_threshold_is_inclusive() -> None:
    """A probability equal to the threshold counts as a detection."""
    [seg] = merge_detections([(_rng(0.0, 2.0), {"a": 0.6})], threshold=0.6, min_duration=1.0)
    assert seg.score == pytest.approx(0.6)


def test_min_duration_filters_short_segments() -> None:
    """Segments shorter than δ are dropped; exactly δ is kept."""
    stream = [
        (_rng(0.0, 1.0), {"short": 0.9, "exact": 0.9}),
        (_rng(0.5, 1.5), {"exact": 0.9}),
    ]
    segments = merge_detections(stream, threshold=0.5, min_duration=1.5)
    assert [s.label for s in segments] == ["exact"]
    assert segments[0].duration == pytest.approx(1.5)


def test_ties_on_start_are_broken_by_label() -> None:
    """Segments starting together are ordered by label."""
    stream = [(_rng(0.0, 3.0), {"walk": 0.9, "jump": 0.8, "run": 0.7})]
    segments = merge_detections(stream, threshold=0.5, min_duration=1.0)
    assert [s.label for s in segments] == ["jump", "run", "walk"]


def test_label_order_within_window_is_irrelevant() -> None:
    """Per-label state is independent of mapping iteration order."""
    forward = [(_rng(float(k), k + 2.0), {"a": 0.9, "b": 0.6 + k * 0.05}) for k in range(5)]
    backward = [(rng, dict(reversed(list(probs.items())))) for rng, probs in forward]
    assert merge_detections(forward, threshold=0.5, min_duration=1.0) == merge_detections(
        backward, threshold=0.5, min_duration=1.0
    )


def test_empty_inputs() -> None:
    """An empty stream, or only empty maps, yields no segments."""
    assert merge_detections([], threshold=0.5, min_duration=1.0) == []
    stream = [(_rng(0.0, 3.0), {}), (_rng(1.0, 4.0), {})]
    assert merge_detections(stream, threshold=0.5, min_duration=1.0) == []


def test_accepts_lazy_iterables() -> None:
    """Generators are consumed once, in order."""
    stream = ((_rng(float(k), k + 3.0), {"a": 0.9}) for k in range(4))
    [seg] = merge_detections(stream, threshold=0.5, min_duration=1.0)
    assert (seg.start, seg.end) == (0.0, 6.0)


def _random_stream(seed: int) -> list[tuple[TimeRange, dict[str, float]]]:
    rnd = random.Random(seed)
    stream = []
    for window in enumerate_windows(60.0, 2.0, 0.5, 1):
        probs = {label: rnd.random() for label in ("a", "b", "c") if rnd.random() > 0.2}
        stream.append((window.time_range, probs))
    return stream


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_output_invariants_on_noisy_stream(seed: int) -> None:
    """Per-label segments never overlap, are ordered and respect δ and score bounds."""
    segments = merge_detections(_random_stream(seed), threshold=0.55, min_duration=1.0)
    assert segments
    assert segments == sorted(segments, key=lambda s: (s.start, s.label))
    for label in {s.label for s in segments}:
        own = [s for s in segments if s.label == label]
        for prev, nxt in zip(own, own[1:]):
            assert prev.end < nxt.start
    for seg in segments:
        assert seg.end - seg.start >= 1.0
        assert 0.0 <= seg.score <= 1.0


def test_merge_is_deterministic() -> None:
    """The same stream and parameters give byte-identical output."""
    stream = _random_stream(3)
    first = [s.model_dump_json() for s in merge_detections(stream, threshold=0.5, min_duration=1.0)]
    second = [s.model_dump_json() for s in merge_detections(stream, threshold=0.5, min_duration=1.0)]
    assert first == second


def test_advance_does_not_mutate_state() -> None:
    """The fold step returns a new state and leaves its input intact."""
    state = advance(MergeState(), _rng(0.0, 3.0), {"a": 0.9}, 0.5)
    snapshot = (dict(state.open), state.closed_segments, state.last_start)

    new_state = advance(state, _rng(5.0, 8.0), {"a": 0.8}, 0.5)

    assert (dict(state.open), state.closed_segments, state.last_start) == snapshot
    assert new_state.closed_segments == (OpenSegment(label="a", start=0.0, end=3.0, score=0.9),)
    assert new_state.open["a"] == OpenSegment(label="a", start=5.0, end=8.0, score=0.8)


def test_flush_closes_open_segments() -> None:
    """Flushing returns closed segments followed by every open one."""
    state = MergeState()
    state = advance(state, _rng(0.0, 2.0), {"b": 0.9, "a": 0.9}, 0.5)
    flushed = flush(state)
    assert [s.label for s in flushed] == ["a", "b"]
    assert finalize_segments(flushed, 5.0) == []


def test_closed_segments_keep_closing_order() -> None:
    """Gap-closed segments are reported oldest first and shared between states."""
    state = MergeState()
    for k in range(6):
        state = advance(state, _rng(4.0 * k, 4.0 * k + 2.0), {"a": 0.9}, 0.5)
    before = state
    state = advance(state, _rng(40.0, 42.0), {"a": 0.9}, 0.5)

    assert [seg.start for seg in state.closed_segments] == [0.0, 4.0, 8.0, 12.0, 16.0, 20.0]
    # The new state links to the previous chain instead of copying it.
    assert state.closed[1] is before.closed
    assert [seg.start for seg in flush(state)] == [0.0, 4.0, 8.0, 12.0, 16.0, 20.0, 40.0]


def test_out_of_order_windows_raise() -> None:
    """Windows must arrive in non-decreasing start order."""
    stream = [(_rng(2.0, 5.0), {"a": 0.9}), (_rng(1.0, 4.0), {"a": 0.9})]
    with pytest.raises(ValueError, match="start order"):
        merge_detections(stream, threshold=0.5, min_duration=1.0)


def test_equal_starts_are_accepted() -> None:
    """Non-decreasing means equal starts are allowed."""
    stream = [(_rng(0.0, 2.0), {"a": 0.9}), (_rng(0.0, 2.0), {"b": 0.9})]
    assert len(merge_detections(stream, threshold=0.5, min_duration=1.0)) == 2


@pytest.mark.parametrize("probability", [-0.1, 1.5, float("nan")])
def test_out_of_range_probability_raises(probability: float) -> None:
    """Probabilities must lie in [0, 1]."""
    with pytest.raises(ValueError, match="probability"):
        merge_detections([(_rng(0.0, 2.0), {"a": probability})], threshold=0.5, min_duration=1.0)


@pytest.mark.parametrize(
    ("threshold", "min_duration"),
    [(-0.1, 1.0), (1.1, 1.0), (float("nan"), 1.0), (0.5, 0.0), (0.5, -1.0)],
)
def test_invalid_parameters_raise(threshold: float, min_duration: float) -> None:
    """τ outside [0, 1] or δ <= 0 is rejected."""
    with pytest.raises(ValueError):
        merge_detections([], threshold=threshold, min_duration=min_duration)
    with pytest.raises(ValueError):
        SegmentMerger(threshold=threshold, min_duration=min_duration)


def test_segment_merger_matches_function() -> None:
    """The bound merger gives the same result as ``merge_detections``."""
    stream = _random_stream(11)
    merger = SegmentMerger(threshold=0.6, min_duration=1.5)
    assert merger(stream) == merge_detections(stream, threshold=0.6, min_duration=1.5)
