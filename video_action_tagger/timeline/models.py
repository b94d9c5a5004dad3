"""Common data models for windowed action tagging.

This module defines pydantic models that are shared across window
enumeration, segment merging and output formatting.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = [
    "ProbabilityMap",
    "TimeRange",
    "Window",
    "Segment",
    "TaggingResult",
]

# label -> probability in [0, 1]; need not sum to 1 and may be empty.
ProbabilityMap = Mapping[str, float]


class TimeRange(BaseModel):
    """A half-open span of media time, in seconds."""

    model_config = ConfigDict(frozen=True)

    start: float = Field(..., description="Start time (seconds).")
    end: float = Field(..., description="End time (seconds), strictly after start.")

    @model_validator(mode="after")
    def _check_bounds(self) -> TimeRange:
        if not (math.isfinite(self.start) and math.isfinite(self.end)):
            raise ValueError("time range bounds must be finite")
        if self.end <= self.start:
            raise ValueError(f"end ({self.end}) must be greater than start ({self.start})")
        return self

    @property
    def duration(self) -> float:
        """Length of the range in seconds."""
        return self.end - self.start


class Window(TimeRange):
    """A sampling window: a time range plus the timestamps to extract frames at."""

    timestamps: tuple[float, ...] = Field(
        ..., description="Ordered sample timestamps inside [start, end]."
    )

    @property
    def time_range(self) -> TimeRange:
        """The window's span without its sample timestamps."""
        return TimeRange(start=self.start, end=self.end)


class Segment(BaseModel):
    """A merged run of detections for one label."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Action label.")
    start: float = Field(..., serialization_alias="startSeconds", description="Start (seconds).")
    end: float = Field(..., serialization_alias="endSeconds", description="End (seconds).")
    score: float = Field(..., ge=0.0, le=1.0, description="Smoothed detection confidence.")

    @model_validator(mode="after")
    def _check_bounds(self) -> Segment:
        if self.end <= self.start:
            raise ValueError(f"end ({self.end}) must be greater than start ({self.start})")
        return self

    @property
    def duration(self) -> float:
        """Length of the segment in seconds."""
        return self.end - self.start


class TaggingResult(BaseModel):
    """Tagging outcome for one video, in the persisted document shape."""

    video: str = Field(..., description="File name of the source video.")
    duration_seconds: float = Field(
        ..., serialization_alias="durationSeconds", description="Video duration (seconds)."
    )
    segments: list[Segment] = Field(
        default_factory=list, description="Merged segments in output order."
    )

    def labels(self) -> list[str]:
        """Return the sorted unique labels present in ``segments``."""
        return sorted({seg.label for seg in self.segments})
