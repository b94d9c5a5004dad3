"""Utility for loading project-level environment variables.

The file uses `python-dotenv` to load a `.env` file sitting at repository root
*early* in the application lifecycle so that the defaults resolved in
:mod:`video_action_tagger.utils.constant` (window length, threshold, model
path, ...) pick up local overrides.

Usage (call as soon as possible in your CLI / entry-point):

    from video_action_tagger.utils.env_loader import load_project_env
    load_project_env()

Re-invocation is a no-op, so callers can safely call multiple times.
"""

from __future__ import annotations

import functools
import pathlib
from collections.abc import Callable
from typing import Any, Final

from dotenv import load_dotenv

_REPO_ROOT: Final[pathlib.Path] = pathlib.Path(__file__).resolve().parents[2]
_ENV_FILE: Final[pathlib.Path] = _REPO_ROOT / ".env"
LOAD_DOTENV: Final[Callable[..., Any]] = load_dotenv


@functools.lru_cache(maxsize=1)
def load_project_env(force: bool = False) -> bool:
    """Load the project-level `.env` file into the process environment.

    The call is cached so the file is read at most once per process. Values
    already present in the environment always win over the file.

    Args:
        force: If True, bypasses the cache and forces a reload of the
            environment file. Defaults to False.

    Returns:
        ``True`` when a `.env` file was found and loaded, ``False`` otherwise.

    """
    if force:
        load_project_env.cache_clear()  # type: ignore[attr-defined]

    if not _ENV_FILE.exists():
        return False

    # `override=False` keeps variables exported by the user / shell.
    LOAD_DOTENV(dotenv_path=_ENV_FILE, override=False)
    return True


__all__ = [
    "load_project_env",
]
