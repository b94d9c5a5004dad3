"""Registry of output formatters for tagging results.

Allows easy extension with new formats by adding a formatter function and
registering it in the ``FORMATTERS`` dictionary.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from video_action_tagger.timeline.models import TaggingResult

from ._csv import to_csv
from ._json import to_json

DEFAULT_FORMATS: tuple[str, ...] = ("json", "csv")


@dataclass
class FormatterSpec:
    """Metadata and function for a specific output format.

    Attributes:
        format_func: The formatter function that converts TaggingResult to string.
        file_extension: The file extension for this format (including the dot).

    """

    format_func: Callable[[TaggingResult], str]
    file_extension: str


# A registry mapping format names to their respective formatter specifications.
FORMATTERS: dict[str, FormatterSpec] = {
    "json": FormatterSpec(format_func=to_json, file_extension=".json"),
    "csv": FormatterSpec(format_func=to_csv, file_extension=".csv"),
}


def get_formatter_spec(format_name: str) -> FormatterSpec:
    """Retrieve the FormatterSpec metadata for the given output format name.

    Parameters:
        format_name (str): Case-insensitive format identifier (e.g., "json", "csv").

    Returns:
        FormatterSpec: The metadata and formatter function for the requested format.

    Raises:
        ValueError: If the specified format_name is not supported.
    """
    spec = FORMATTERS.get(format_name.lower())
    if not spec:
        supported = list(FORMATTERS.keys())
        raise ValueError(f"Unsupported format: '{format_name}'. Supported formats are: {supported}")
    return spec


def get_formatter(format_name: str) -> Callable[[TaggingResult], str]:
    """Get the formatter function registered for the given format name.

    Raises:
        ValueError: If `format_name` is not supported.
    """
    return get_formatter_spec(format_name).format_func


__all__ = [
    "DEFAULT_FORMATS",
    "FORMATTERS",
    "FormatterSpec",
    "get_formatter",
    "get_formatter_spec",
    "to_csv",
    "to_json",
]
