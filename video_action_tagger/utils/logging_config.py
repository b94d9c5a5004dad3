"""Centralized logging configuration for the video action tagger.

This module provides consistent logging setup for the CLI and for library
use. Configuration respects environment variables and provides sensible
defaults for batch runs and for debugging.
"""

from __future__ import annotations

import logging
import os
import sys
import warnings
from typing import Literal

from video_action_tagger.utils.constant import OPENCV_LOG_LEVEL

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# OpenCV's native logger uses its own level names.
_OPENCV_LEVELS: dict[str, str] = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "FATAL",
    "SILENT": "SILENT",
}


def _configure_third_party_log_levels(*, log_level: int) -> None:
    """Set explicit levels for noisy third-party loggers.

    Args:
        log_level: Effective root log level chosen for the application.
    """
    floor = max(log_level, logging.WARNING)
    logging.getLogger("PIL").setLevel(floor)
    logging.getLogger("torch").setLevel(floor)


def _apply_opencv_verbosity(opencv_level: str) -> None:
    """Apply the OpenCV native log level to env and, when loaded, to cv2.

    Args:
        opencv_level: Desired level name (``DEBUG`` ... ``CRITICAL`` or ``SILENT``).
    """
    name = _OPENCV_LEVELS.get(opencv_level.upper(), "ERROR")
    os.environ["OPENCV_LOG_LEVEL"] = name

    cv2 = sys.modules.get("cv2")
    if cv2 is None:
        # cv2 reads OPENCV_LOG_LEVEL when first imported.
        return
    set_level = getattr(getattr(cv2, "utils", None), "logging", None)
    if set_level is not None:
        level = getattr(set_level, f"LOG_LEVEL_{name}", None)
        if level is not None:
            set_level.setLogLevel(level)


def configure_logging(
    *,
    level: LogLevel | None = None,
    verbose: bool = False,
    quiet: bool = False,
    format_string: str | None = None,
) -> None:
    """Configure centralized logging for the application.

    Sets up Python logging and OpenCV's native verbosity based on the
    provided configuration. This should be called once at application
    startup (CLI entry).

    Args:
        level: Explicit log level (overrides verbose/quiet).
        verbose: Enable verbose logging (DEBUG level + OpenCV info logs).
        quiet: Suppress all non-critical logs.
        format_string: Custom log format (uses default if None).

    Examples:
        >>> # CLI verbose mode
        >>> configure_logging(verbose=True)

        >>> # Batch quiet mode
        >>> configure_logging(quiet=True)
    """
    if level is not None:
        log_level = getattr(logging, level.upper())
    elif verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.CRITICAL
    else:
        log_level = logging.INFO

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,  # Reconfigure even if already configured
    )
    _configure_third_party_log_levels(log_level=log_level)

    if verbose:
        _apply_opencv_verbosity("INFO")
    elif quiet:
        warnings.filterwarnings("ignore")
        _apply_opencv_verbosity("SILENT")
    else:
        # Default: the level configured at startup (ERROR unless overridden).
        _apply_opencv_verbosity(OPENCV_LOG_LEVEL)

    if not quiet:
        logger = logging.getLogger(__name__)
        logger.debug(f"Logging configured: level={logging.getLevelName(log_level)}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__ of calling module).

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)
