"""Shared test fixtures for the video_action_tagger test suite."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

import numpy as np
import pytest

from video_action_tagger.video.source import FrameDecodeError


class FakeVideoSource:
    """In-memory video: a duration and a frame per timestamp.

    Frames carry their timestamp in the top-left pixel so classifiers can
    tell windows apart. Timestamps listed in ``broken`` fail to decode.
    """

    def __init__(self, duration: float, broken: Sequence[float] = ()) -> None:
        self._duration = duration
        self.broken = {round(ts, 6) for ts in broken}
        self.extracted: list[float] = []
        self.closed = False

    @property
    def duration(self) -> float:
        return self._duration

    def extract(self, timestamp: float) -> np.ndarray:
        if round(timestamp, 6) in self.broken or not 0.0 <= timestamp <= self._duration:
            raise FrameDecodeError(f"no frame at {timestamp}")
        self.extracted.append(timestamp)
        frame = np.zeros((4, 4, 3), dtype=np.float64)
        frame[0, 0, 0] = timestamp
        return frame

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeVideoSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ScriptedClassifier:
    """Classifier returning probabilities keyed by the first frame's timestamp."""

    def __init__(
        self,
        script: Callable[[float], Mapping[str, float]] | Mapping[float, Mapping[str, float]],
    ) -> None:
        self.script = script
        self.calls: list[int] = []

    def classify(self, frames: Sequence[np.ndarray]) -> Mapping[str, float]:
        self.calls.append(len(frames))
        if not frames:
            return {}
        start = round(float(frames[0][0, 0, 0]), 6)
        if callable(self.script):
            return dict(self.script(start))
        return dict(self.script.get(start, {}))


@pytest.fixture
def fake_source_factory() -> Callable[..., FakeVideoSource]:
    """Return the :class:`FakeVideoSource` constructor."""
    return FakeVideoSource


@pytest.fixture
def scripted_classifier_factory() -> Callable[..., ScriptedClassifier]:
    """Return the :class:`ScriptedClassifier` constructor."""
    return ScriptedClassifier
