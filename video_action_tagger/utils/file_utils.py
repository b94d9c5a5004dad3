"""Utilities for input resolution and output naming.

The module exposes:
• `get_unique_filename` – avoid clobbering earlier results
• `resolve_input_paths` – expand wildcard patterns / directories into concrete
  video paths
• `default_output_dir` – the ``results`` folder placed next to the inputs
"""

from __future__ import annotations

import pathlib
from collections.abc import Iterable, Sequence
from glob import glob

from video_action_tagger.utils.constant import (
    DEFAULT_RESULTS_DIRNAME,
    SUPPORTED_VIDEO_EXTENSIONS,
)

PathLike = str | pathlib.Path

__all__ = [
    "default_output_dir",
    "get_unique_filename",
    "resolve_input_paths",
]


def get_unique_filename(
    base_path: PathLike,
    overwrite: bool = False,
    separator: str = "-",
) -> pathlib.Path:
    """Generate a unique filename to avoid overwriting existing files.

    If the file does not exist or overwrite is True, returns the original path.
    Otherwise, appends a numbered suffix like ``-1``, ``-2``, etc.

    Args:
        base_path: The desired file path.
        overwrite: If True, return the original path even if it exists.
        separator: The separator to use before the number suffix.

    Returns:
        A pathlib.Path that is guaranteed not to exist (unless overwrite=True).

    Raises:
        RuntimeError: If a unique filename cannot be found after 9,999 attempts.

    """
    path = pathlib.Path(base_path)

    if overwrite or not path.exists():
        return path

    for counter in range(1, 10000):
        new_path = path.parent / f"{path.stem}{separator}{counter}{path.suffix}"
        if not new_path.exists():
            return new_path
    raise RuntimeError(f"Cannot find unique filename for {base_path}")


def _is_video_file(path: pathlib.Path, exts: set[str]) -> bool:
    return path.is_file() and path.suffix.lower() in exts


def resolve_input_paths(
    patterns: Iterable[PathLike] | PathLike,
    *,
    video_exts: Sequence[str] | set[str] | frozenset[str] | None = None,
    recursive: bool = False,
) -> list[pathlib.Path]:
    """Expand file/directory/wildcard patterns into a deduplicated list of videos.

    Directories are scanned for files with a supported extension (top level
    only unless ``recursive``); directory listings are sorted so batches run in
    a stable order. Duplicates are removed while preserving the insertion
    order. Non-existent patterns are ignored.

    Parameters:
        patterns: One or more file, directory, or glob patterns to resolve.
        video_exts: Allowed file extensions (dot-prefixed, case-insensitive).
            Defaults to ``SUPPORTED_VIDEO_EXTENSIONS``.
        recursive: If True, search directories recursively.

    Returns:
        list[pathlib.Path]: Existing video paths in insertion order.
    """
    if isinstance(patterns, (str, pathlib.Path)):
        patterns = [patterns]

    _exts = {ext.lower() for ext in (video_exts or SUPPORTED_VIDEO_EXTENSIONS)}

    resolved: list[pathlib.Path] = []
    seen: set[pathlib.Path] = set()

    def _add(p: pathlib.Path) -> None:
        if p not in seen and _is_video_file(p, _exts):
            seen.add(p)
            resolved.append(p)

    for patt in patterns:
        p = pathlib.Path(patt).expanduser()
        if p.is_dir():
            walker = p.rglob("*") if recursive else p.glob("*")
            for child in sorted(walker):
                _add(child)
        else:
            for m in sorted(glob(str(p), recursive=True)):
                _add(pathlib.Path(m))
    return resolved


def default_output_dir(inputs: Sequence[PathLike]) -> pathlib.Path:
    """Return the results folder used when no output directory is given.

    The folder lives inside the first input that is a directory, or beside the
    first input file; with no inputs it is created under the working directory.

    Args:
        inputs: Raw input arguments as passed on the command line.

    Returns:
        Path of the ``results`` directory (not created here).
    """
    for raw in inputs:
        p = pathlib.Path(raw).expanduser()
        if p.is_dir():
            return p / DEFAULT_RESULTS_DIRNAME
    for raw in inputs:
        p = pathlib.Path(raw).expanduser()
        if p.is_file():
            return p.parent / DEFAULT_RESULTS_DIRNAME
    return pathlib.Path.cwd() / DEFAULT_RESULTS_DIRNAME
