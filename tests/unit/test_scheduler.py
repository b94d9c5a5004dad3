"""Unit tests for ordered window classification (fan-out / fan-in)."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import pytest

from video_action_tagger.classifier.base import ClassifierError
from video_action_tagger.pipeline.scheduler import classify_windows
from video_action_tagger.timeline.models import TimeRange
from video_action_tagger.timeline.windows import WindowSequence


def _label_by_start(start: float) -> dict[str, float]:
    return {f"w{int(start)}": 0.9}


@pytest.mark.parametrize("workers", [1, 4])
def test_results_follow_window_order(
    workers: int,
    fake_source_factory: Callable,
    scripted_classifier_factory: Callable,
) -> None:
    """Detections come back in window order regardless of worker count."""
    source = fake_source_factory(12.0)
    classifier = scripted_classifier_factory(_label_by_start)
    windows = WindowSequence(12.0, 3.0, 1.0, 4)

    detections = list(
        classify_windows(windows, source, classifier, workers=workers, cancel_event=threading.Event())
    )

    assert [rng.start for rng, _ in detections] == [float(k) for k in range(10)]
    assert all(type(rng) is TimeRange for rng, _ in detections)
    assert [probs for _, probs in detections] == [{f"w{k}": 0.9} for k in range(10)]


def test_slow_early_windows_do_not_reorder(
    fake_source_factory: Callable, scripted_classifier_factory: Callable
) -> None:
    """Later windows finishing first are held back until earlier ones complete."""
    finished: list[float] = []

    def slow_first(start: float) -> dict[str, float]:
        time.sleep(0.05 if start < 2 else 0.0)
        finished.append(start)
        return {"a": 0.9}

    source = fake_source_factory(8.0)
    classifier = scripted_classifier_factory(slow_first)
    windows = WindowSequence(8.0, 2.0, 1.0, 2)

    detections = list(
        classify_windows(windows, source, classifier, workers=4, cancel_event=threading.Event())
    )

    assert [rng.start for rng, _ in detections] == [float(k) for k in range(7)]
    assert finished != sorted(finished)


def test_on_window_called_per_detection(
    fake_source_factory: Callable, scripted_classifier_factory: Callable
) -> None:
    """The progress callback fires once per yielded window."""
    ticks: list[int] = []
    source = fake_source_factory(5.0)
    classifier = scripted_classifier_factory(_label_by_start)
    list(
        classify_windows(
            WindowSequence(5.0, 3.0, 1.0, 2),
            source,
            classifier,
            workers=2,
            cancel_event=threading.Event(),
            on_window=lambda: ticks.append(1),
        )
    )
    assert len(ticks) == 3


def test_failed_samples_are_dropped(
    fake_source_factory: Callable, scripted_classifier_factory: Callable
) -> None:
    """Undecodable samples shrink the frame list; a window may end up empty."""
    # Window [0, 2] samples 0, 1, 2; window [1, 3] samples 1, 2, 3.
    source = fake_source_factory(3.0, broken=[0.0, 1.0, 2.0, 3.0])
    classifier = scripted_classifier_factory(_label_by_start)

    detections = list(
        classify_windows(
            WindowSequence(3.0, 2.0, 1.0, 3), source, classifier, cancel_event=threading.Event()
        )
    )

    assert classifier.calls == [0, 0]
    assert [probs for _, probs in detections] == [{}, {}]


def test_partial_sample_failure(
    fake_source_factory: Callable, scripted_classifier_factory: Callable
) -> None:
    """Only the failing samples are dropped."""
    source = fake_source_factory(3.0, broken=[1.0])
    classifier = scripted_classifier_factory(_label_by_start)
    list(
        classify_windows(
            WindowSequence(3.0, 2.0, 1.0, 3), source, classifier, cancel_event=threading.Event()
        )
    )
    assert classifier.calls == [2, 2]


@pytest.mark.parametrize("workers", [1, 3])
def test_cancel_before_start_yields_nothing(
    workers: int, fake_source_factory: Callable, scripted_classifier_factory: Callable
) -> None:
    """A pre-set cancel event stops submission immediately."""
    event = threading.Event()
    event.set()
    classifier = scripted_classifier_factory(_label_by_start)
    detections = list(
        classify_windows(
            WindowSequence(10.0, 3.0, 1.0, 2),
            fake_source_factory(10.0),
            classifier,
            workers=workers,
            cancel_event=event,
        )
    )
    assert detections == []
    assert classifier.calls == []


@pytest.mark.parametrize("workers", [1, 2])
def test_cancel_mid_stream_truncates_in_order(
    workers: int, fake_source_factory: Callable, scripted_classifier_factory: Callable
) -> None:
    """Cancelling stops new submissions; what was yielded is an ordered prefix."""
    event = threading.Event()
    ticks: list[int] = []

    def tick() -> None:
        ticks.append(1)
        if len(ticks) == 2:
            event.set()

    windows = WindowSequence(40.0, 3.0, 1.0, 2)
    detections = list(
        classify_windows(
            windows,
            fake_source_factory(40.0),
            scripted_classifier_factory(_label_by_start),
            workers=workers,
            cancel_event=event,
            on_window=tick,
        )
    )

    starts = [rng.start for rng, _ in detections]
    assert 2 <= len(starts) < len(windows)
    assert starts == [float(k) for k in range(len(starts))]


@pytest.mark.parametrize("workers", [1, 3])
def test_classifier_error_propagates(
    workers: int, fake_source_factory: Callable, scripted_classifier_factory: Callable
) -> None:
    """Inference failures surface to the consumer."""

    def failing(start: float) -> dict[str, float]:
        if start == 3.0:
            raise ClassifierError("model exploded")
        return {"a": 0.9}

    with pytest.raises(ClassifierError, match="exploded"):
        list(
            classify_windows(
                WindowSequence(10.0, 3.0, 1.0, 2),
                fake_source_factory(10.0),
                scripted_classifier_factory(failing),
                workers=workers,
                cancel_event=threading.Event(),
            )
        )
