"""Segment and caption timing models.

A HighlightSegment is proposed upstream and read-only here. WordTimestamp
and SubtitleEntry only live for the duration of one render job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from highlight_reels.errors import ValidationError


@dataclass(frozen=True)
class HighlightSegment:
    """A time range in the source video proposed as a highlight.

    Attributes:
        start: Start time in seconds
        end: End time in seconds, strictly after ``start``
        reason: Why the segment was proposed
        transcription: What is said during the segment, used for captions
    """

    start: float
    end: float
    reason: str = ""
    transcription: str = ""

    def __post_init__(self):
        if self.end <= self.start:
            raise ValidationError(
                f"Segment end must be after start: {self.start} -> {self.end}",
                context={"start": self.start, "end": self.end},
            )

    @property
    def duration(self) -> float:
        """Duration of the segment in seconds."""
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "start": self.start,
            "end": self.end,
            "reason": self.reason,
            "transcription": self.transcription,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HighlightSegment":
        """Create from a dictionary as returned by the segment proposer.

        Raises:
            ValidationError: If timing fields are missing or not numeric
        """
        try:
            start = float(data["start"])
            end = float(data["end"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(
                f"Segment has missing or invalid timing: {e}",
                context={"segment": data},
            ) from e

        return cls(
            start=start,
            end=end,
            reason=str(data.get("reason") or ""),
            transcription=str(data.get("transcription") or ""),
        )


@dataclass(frozen=True)
class WordTimestamp:
    """A single spoken word with timing relative to the clip start."""

    word: str
    start: float  # Seconds from clip start
    end: float  # Seconds from clip start

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return {"word": self.word, "start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WordTimestamp":
        return cls(
            word=str(data["word"]),
            start=float(data["start"]),
            end=float(data["end"]),
        )


@dataclass(frozen=True)
class SubtitleEntry:
    """One caption screen of a timed subtitle file.

    Attributes:
        index: 1-based ordinal within the file
        start_time: Formatted start timestamp (HH:MM:SS,mmm)
        end_time: Formatted end timestamp (HH:MM:SS,mmm)
        text: Upper-cased phrase
    """

    index: int
    start_time: str
    end_time: str
    text: str

    def to_srt_block(self) -> str:
        """Render as an SRT block without the trailing blank line."""
        return f"{self.index}\n{self.start_time} --> {self.end_time}\n{self.text}"
