"""Project-wide constants for convenient reuse.

Every tunable default of the tagger is resolved here, from the environment
or the project `.env` file. The windowing and merging functions never fall
back on these values themselves; callers pass them in explicitly.
"""

from __future__ import annotations

import os
import pathlib
import sys
from typing import Final

from video_action_tagger.utils.env_loader import load_project_env

# Ensure .env is loaded exactly once at import time for the whole project
if "pytest" not in sys.modules:
    load_project_env()


# Repository root resolved relative to this file (utils/constant.py → package → repo)
REPO_ROOT: Final[pathlib.Path] = pathlib.Path(__file__).resolve().parents[2]

# Default path of the dotenv file containing runtime overrides
ENV_FILE: Final[pathlib.Path] = REPO_ROOT / ".env"

# Sliding window geometry (seconds)
DEFAULT_WINDOW_SEC: Final[float] = float(os.getenv("WINDOW_SEC", "3.0"))
DEFAULT_STRIDE_SEC: Final[float] = float(os.getenv("STRIDE_SEC", "1.0"))

# Frames sampled uniformly across each window (both window edges included)
DEFAULT_SAMPLES_PER_WINDOW: Final[int] = int(os.getenv("SAMPLES_PER_WINDOW", "8"))

# Per-label minimum probability for a window to count as a detection
DEFAULT_THRESHOLD: Final[float] = float(os.getenv("DETECTION_THRESHOLD", "0.6"))

# Merged segments shorter than this (seconds) are dropped
DEFAULT_MIN_SEGMENT_SEC: Final[float] = float(os.getenv("MIN_SEGMENT_SEC", "1.5"))

# Square input resolution expected by the action classifier
DEFAULT_FRAME_SIZE: Final[int] = int(os.getenv("FRAME_SIZE", "224"))

# Threads used to run the classifier concurrently (1 = inline)
DEFAULT_CLASSIFY_WORKERS: Final[int] = int(os.getenv("CLASSIFY_WORKERS", "1"))

# Attach detected labels to the source file as searchable tags
DEFAULT_WRITE_FILE_TAGS: Final[bool] = os.getenv("WRITE_FILE_TAGS", "True").lower() == "true"

# Default TorchScript action model (empty = must be given on the command line)
ACTION_MODEL_PATH: Final[str] = os.getenv("ACTION_MODEL_PATH", "")

# Activation applied to the classifier logits: softmax, sigmoid or none
CLASSIFIER_ACTIVATION: Final[str] = os.getenv("CLASSIFIER_ACTIVATION", "softmax")

# Name of the results folder created next to the inputs when --output-dir is omitted
DEFAULT_RESULTS_DIRNAME: Final[str] = os.getenv("RESULTS_DIRNAME", "results")

# Extended attribute used for searchable file tags (freedesktop convention)
FILE_TAGS_XATTR: Final[str] = os.getenv("FILE_TAGS_XATTR", "user.xdg.tags")

# Logging configuration
OPENCV_LOG_LEVEL: Final[str] = os.getenv("OPENCV_LOG_LEVEL", "ERROR")

# Supported video file formats
SUPPORTED_VIDEO_EXTENSIONS: Final[frozenset[str]] = frozenset({
    ".mp4",
    ".m4v",
    ".mkv",
    ".avi",
    ".mov",
    ".webm",
    ".wmv",
})
