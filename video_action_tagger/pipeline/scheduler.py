"""Ordered fan-out of window classification.

Frames are decoded on the calling thread (a capture handle is not
thread-safe) and classification runs on a thread pool. Results are handed
back strictly in window order: futures wait in a FIFO queue and only the
head of the queue is ever yielded, which is the barrier between the
unordered classification stage and the order-dependent merger.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor

from video_action_tagger.classifier.base import Classifier
from video_action_tagger.timeline.models import ProbabilityMap, TimeRange, Window
from video_action_tagger.utils.cancel import is_cancelled
from video_action_tagger.video.source import VideoSource, sample_window_frames

logger = logging.getLogger(__name__)

__all__ = ["classify_windows"]

Detection = tuple[TimeRange, ProbabilityMap]


def _classify_inline(
    windows: Iterable[Window],
    source: VideoSource,
    classifier: Classifier,
    cancel_event: threading.Event | None,
    on_window: Callable[[], None] | None,
) -> Iterator[Detection]:
    for window in windows:
        if is_cancelled(cancel_event):
            logger.info(f"Cancelled before window at {window.start:.2f}s")
            return
        frames = sample_window_frames(source, window)
        probabilities = classifier.classify(frames)
        if on_window is not None:
            on_window()
        yield window.time_range, probabilities


def _classify_pooled(
    windows: Iterable[Window],
    source: VideoSource,
    classifier: Classifier,
    workers: int,
    cancel_event: threading.Event | None,
    on_window: Callable[[], None] | None,
) -> Iterator[Detection]:
    max_pending = 2 * workers
    pending: deque[tuple[Window, Future[ProbabilityMap]]] = deque()

    def _pop() -> Detection:
        window, future = pending.popleft()
        probabilities = future.result()
        if on_window is not None:
            on_window()
        return window.time_range, probabilities

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="classify") as pool:
        try:
            for window in windows:
                if is_cancelled(cancel_event):
                    logger.info(f"Cancelled before window at {window.start:.2f}s")
                    break
                frames = sample_window_frames(source, window)
                pending.append((window, pool.submit(classifier.classify, frames)))
                if len(pending) >= max_pending:
                    yield _pop()
            while pending:
                yield _pop()
        finally:
            for _window, future in pending:
                future.cancel()


def classify_windows(
    windows: Iterable[Window],
    source: VideoSource,
    classifier: Classifier,
    *,
    workers: int = 1,
    cancel_event: threading.Event | None = None,
    on_window: Callable[[], None] | None = None,
) -> Iterator[Detection]:
    """Classify every window and yield ``(range, probabilities)`` in window order.

    Parameters:
        windows: Windows in start order.
        source: Video to extract sample frames from.
        classifier: Classify capability; called once per window.
        workers: Classification threads; ``<= 1`` runs inline.
        cancel_event: When set, no further windows are submitted. Windows
            already submitted are still yielded. ``None`` uses the process-wide
            cancel event.
        on_window: Callback invoked once per yielded window (progress).

    Yields:
        Detections in the same order as ``windows``.

    Raises:
        ClassifierError: Propagated from the classifier, in window order.
    """
    if workers <= 1:
        return _classify_inline(windows, source, classifier, cancel_event, on_window)
    return _classify_pooled(windows, source, classifier, workers, cancel_event, on_window)
