"""Best-effort searchable tags on source videos.

Detected labels are stored in an extended attribute of the video file
(``user.xdg.tags`` by default, comma separated) so desktop search tools can
find videos by action. Tagging never affects the outcome of a run: platforms
without extended attributes and filesystems that refuse them are ignored.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from video_action_tagger.utils.constant import FILE_TAGS_XATTR

logger = logging.getLogger(__name__)

__all__ = ["encode_tags", "write_file_tags"]


def encode_tags(labels: Iterable[str]) -> bytes:
    """Return the attribute payload for ``labels``: sorted, unique, comma separated."""
    unique = sorted({label.replace(",", " ").strip() for label in labels} - {""})
    return ",".join(unique).encode("utf-8")


def write_file_tags(path: Path, labels: Iterable[str], *, attribute: str = FILE_TAGS_XATTR) -> bool:
    """Attach ``labels`` to ``path`` as searchable tags.

    Args:
        path: Source video file.
        labels: Segment labels; duplicates are collapsed.
        attribute: Extended attribute name to write.

    Returns:
        ``True`` if the attribute was written, ``False`` when there was nothing
        to write or the platform/filesystem refused it.
    """
    payload = encode_tags(labels)
    if not payload:
        return False
    setxattr = getattr(os, "setxattr", None)
    if setxattr is None:
        return False
    try:
        setxattr(os.fspath(path), attribute, payload)
    except OSError as exc:
        logger.debug(f"Tagging {path} skipped: {exc}")
        return False
    return True
