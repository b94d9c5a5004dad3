"""Classifier capability consumed by the tagging pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from video_action_tagger.timeline.models import ProbabilityMap
from video_action_tagger.video.source import Frame

__all__ = ["Classifier", "ClassifierError"]


class ClassifierError(RuntimeError):
    """Inference failed; the current video cannot be tagged."""


class Classifier(Protocol):
    """Map a window's frames to per-label probabilities.

    Implementations must be safe to call from several threads at once and
    must accept an empty frame sequence (typically returning ``{}``).
    """

    def classify(self, frames: Sequence[Frame]) -> ProbabilityMap:
        """Return label -> probability for one window.

        Raises:
            ClassifierError: If inference fails.
        """
