"""TorchScript action classifier with a lazy model cache.

The model receives one window as a float tensor of shape ``(T, 3, S, S)``
(``T`` sampled frames, RGB scaled to ``[0, 1]``, ``S`` the frame size) and
returns one logit per class. Label names are looked up, in order, from the
explicit ``labels`` argument, a ``<model>.labels.txt`` sidecar, the model's
embedded ``classes`` extra file, or positional ``class_<i>`` names.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

import cv2
import numpy as np
import torch

from video_action_tagger.classifier.base import ClassifierError
from video_action_tagger.timeline.models import ProbabilityMap
from video_action_tagger.utils.constant import CLASSIFIER_ACTIVATION, DEFAULT_FRAME_SIZE
from video_action_tagger.video.source import Frame

logger = logging.getLogger(__name__)

__all__ = [
    "ACTIVATIONS",
    "TorchScriptClassifier",
    "clear_classifier_cache",
    "get_classifier",
    "load_labels",
]

ACTIVATIONS: tuple[str, ...] = ("softmax", "sigmoid", "none")

_EXTRA_LABEL_KEYS: tuple[str, ...] = ("classes", "classes_names")


def _best_device() -> str:
    """Return ``"cuda"`` when a GPU is available, else ``"cpu"``."""
    return "cuda" if torch.cuda.is_available() else "cpu"


def load_labels(model_path: Path, extra_files: dict[str, bytes | str]) -> list[str]:
    """Resolve label names from a sidecar file or the model's extra files.

    Parameters:
        model_path (Path): Path of the TorchScript archive.
        extra_files (dict): Extra files filled in by ``torch.jit.load``.

    Returns:
        list[str]: Label names, or an empty list when none were found.
    """
    sidecar = model_path.with_suffix(".labels.txt")
    if sidecar.is_file():
        lines = sidecar.read_text(encoding="utf-8").splitlines()
        return [line.strip() for line in lines if line.strip()]
    for key in _EXTRA_LABEL_KEYS:
        raw = extra_files.get(key)
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if raw:
            return [name.strip() for name in raw.split(",") if name.strip()]
    return []


class TorchScriptClassifier:
    """Run a TorchScript video-clip model on sampled window frames."""

    def __init__(
        self,
        model_path: Path | str,
        *,
        labels: Sequence[str] | None = None,
        frame_size: int = DEFAULT_FRAME_SIZE,
        activation: str = CLASSIFIER_ACTIVATION,
        top_k: int | None = None,
        device: str | None = None,
    ) -> None:
        """Load the model.

        Raises:
            ClassifierError: If the model cannot be loaded.
            ValueError: If ``activation`` or ``top_k`` is invalid.
        """
        if activation not in ACTIVATIONS:
            raise ValueError(f"activation must be one of {ACTIVATIONS}, got {activation!r}")
        if top_k is not None and top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")

        self.model_path = Path(model_path)
        self.frame_size = frame_size
        self.activation = activation
        self.top_k = top_k
        self.device = device or _best_device()

        extra_files: dict[str, bytes | str] = {key: "" for key in _EXTRA_LABEL_KEYS}
        try:
            self._module = torch.jit.load(
                str(self.model_path), map_location=self.device, _extra_files=extra_files
            )
        except (RuntimeError, ValueError, OSError) as exc:
            raise ClassifierError(f"Cannot load model {self.model_path}: {exc}") from exc
        self._module.eval()
        self.labels = list(labels) if labels else load_labels(self.model_path, extra_files)
        logger.debug(
            f"Loaded {self.model_path.name} on {self.device} with {len(self.labels)} labels"
        )

    def _to_tensor(self, frames: Sequence[Frame]) -> torch.Tensor:
        size = (self.frame_size, self.frame_size)
        batch = np.stack([
            cv2.resize(np.asarray(frame, dtype=np.uint8), size, interpolation=cv2.INTER_AREA)
            for frame in frames
        ])
        tensor = torch.from_numpy(batch).permute(0, 3, 1, 2).float().div_(255.0)
        return tensor.to(self.device)

    def _activate(self, logits: torch.Tensor) -> torch.Tensor:
        if self.activation == "softmax":
            return torch.softmax(logits, dim=0)
        if self.activation == "sigmoid":
            return torch.sigmoid(logits)
        return logits.clamp(0.0, 1.0)

    def _label(self, index: int) -> str:
        return self.labels[index] if index < len(self.labels) else f"class_{index}"

    def classify(self, frames: Sequence[Frame]) -> ProbabilityMap:
        """Return label -> probability for one window of frames.

        An empty frame sequence yields an empty mapping without running the model.

        Raises:
            ClassifierError: If preprocessing or inference fails, or the model
                emits non-finite scores.
        """
        if not frames:
            return {}
        try:
            inputs = self._to_tensor(frames)
            with torch.inference_mode():
                output = self._module(inputs)
            activated = self._activate(output.detach().float().reshape(-1))
        except (RuntimeError, ValueError, cv2.error) as exc:
            raise ClassifierError(f"Inference failed for {self.model_path.name}: {exc}") from exc
        if not bool(torch.isfinite(activated).all()):
            raise ClassifierError(f"{self.model_path.name} produced non-finite scores")
        probs = activated.cpu().tolist()

        ranked = sorted(range(len(probs)), key=lambda i: probs[i], reverse=True)
        if self.top_k is not None:
            ranked = ranked[: self.top_k]
        return {self._label(i): float(probs[i]) for i in ranked}


@lru_cache(maxsize=4)
def get_classifier(
    model_path: str,
    frame_size: int = DEFAULT_FRAME_SIZE,
    activation: str = CLASSIFIER_ACTIVATION,
    top_k: int | None = None,
) -> TorchScriptClassifier:
    """Return a cached :class:`TorchScriptClassifier` for ``model_path``."""
    return TorchScriptClassifier(
        model_path, frame_size=frame_size, activation=activation, top_k=top_k
    )


def clear_classifier_cache() -> None:
    """Drop cached classifiers and release GPU memory when possible."""
    get_classifier.cache_clear()
    if torch.cuda.is_available():
        torch.cuda.empty_cache()
