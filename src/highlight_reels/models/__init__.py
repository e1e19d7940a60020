"""Data models for highlight-reels."""

from __future__ import annotations

from highlight_reels.models.clip import (
    CaptionMode,
    ClipArtifact,
    ClipFailure,
    JobState,
    RenderJob,
    RenderResult,
)
from highlight_reels.models.segment import HighlightSegment, SubtitleEntry, WordTimestamp

__all__ = [
    # Segment models
    "HighlightSegment",
    "WordTimestamp",
    "SubtitleEntry",
    # Job models
    "CaptionMode",
    "ClipArtifact",
    "ClipFailure",
    "JobState",
    "RenderJob",
    "RenderResult",
]
