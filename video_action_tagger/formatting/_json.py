"""Formatter for JSON (.json) output."""

from video_action_tagger.timeline.models import TaggingResult


def to_json(result: TaggingResult, **kwargs: object) -> str:
    """
    Convert a TaggingResult into a JSON document.

    Keys use the persisted camelCase names (``durationSeconds``,
    ``startSeconds``, ``endSeconds``).

    Parameters:
        result: The TaggingResult to serialize.
        **kwargs: Additional arguments; ignored for JSON output.

    Returns:
        JSON string representation of the result (pretty-printed with two-space indentation).
    """
    return result.model_dump_json(by_alias=True, indent=2)
