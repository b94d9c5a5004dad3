"""Formatter for CSV (.csv) output containing one row per segment."""

from __future__ import annotations

import csv
import io

from video_action_tagger.timeline.models import TaggingResult

CSV_HEADER: tuple[str, ...] = ("label", "start_seconds", "end_seconds", "score")


def to_csv(result: TaggingResult, **kwargs: object) -> str:  # noqa: D401
    """Convert a ``TaggingResult`` into CSV string (segment-level).

    Columns: label, start_seconds, end_seconds, score

    Args:
        result: The tagging result containing segments.
        **kwargs: Additional arguments (ignored for CSV output).

    Returns:
        A CSV string with a header row and one row per segment.

    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for seg in result.segments:
        writer.writerow([seg.label, seg.start, seg.end, seg.score])
    return buffer.getvalue()
