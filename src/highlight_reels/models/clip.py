"""Render job and clip artifact models.

A RenderJob is the unit of work for one segment; it owns the transient
files created while it runs. A ClipArtifact describes a rendered clip and is
what callers get back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from highlight_reels.models.segment import HighlightSegment
from highlight_reels.video.portrait import AspectRatio


class JobState(str, Enum):
    """State of a render job."""

    PENDING = "pending"
    CAPTION_PENDING = "caption_pending"
    FILTER_BUILT = "filter_built"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


class CaptionMode(str, Enum):
    """How captions are drawn into a clip."""

    NONE = "none"
    STATIC = "static"  # Burned-in text for the whole clip
    TIMED = "timed"  # Subtitle overlay driven by word timings


@dataclass
class RenderJob:
    """One segment's render work.

    Attributes:
        job_id: Request-wide identifier shared by all segments
        index: Position of the segment in the request (0-based)
        segment: The segment being rendered
        input_path: Source video
        output_path: Where the rendered clip is written
        aspect_ratio: Target aspect ratio
        caption_text: Text used for static burn-in captions
        state: Current state
        caption_mode: Caption mode chosen for the render
        transient_files: Working files owned by this job, removed on exit
    """

    job_id: str
    index: int
    segment: HighlightSegment
    input_path: Path
    output_path: Path
    aspect_ratio: AspectRatio = AspectRatio.VERTICAL_9_16
    caption_text: str = ""
    state: JobState = JobState.PENDING
    caption_mode: CaptionMode = CaptionMode.NONE
    transient_files: list[Path] = field(default_factory=list)

    @property
    def start(self) -> float:
        return self.segment.start

    @property
    def duration(self) -> float:
        return self.segment.duration

    @property
    def name(self) -> str:
        """Prefix shared by every file this job creates."""
        return f"{self.job_id}_clip_{self.index:02d}"

    def working_file(self, directory: Path, suffix: str) -> Path:
        """Reserve a transient file path in ``directory`` owned by this job."""
        path = directory / f"{self.name}{suffix}"
        self.transient_files.append(path)
        return path


@dataclass
class ClipArtifact:
    """A rendered clip returned to the caller."""

    id: int
    path: Path
    segment: HighlightSegment
    caption_mode: CaptionMode = CaptionMode.NONE

    @property
    def reason(self) -> str:
        return self.segment.reason

    @property
    def transcription(self) -> str:
        return self.segment.transcription

    @property
    def start(self) -> float:
        return self.segment.start

    @property
    def end(self) -> float:
        return self.segment.end

    def to_dict(self) -> dict[str, Any]:
        """Convert to the descriptor shape returned to clients."""
        return {
            "id": self.id,
            "path": str(self.path),
            "reason": self.reason,
            "transcription": self.transcription,
            "start": self.start,
            "end": self.end,
            "caption_mode": self.caption_mode.value,
        }


@dataclass
class ClipFailure:
    """A segment that failed to render under the continue-on-error policy."""

    index: int
    segment: HighlightSegment
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "segment": self.segment.to_dict(),
            "error": self.error,
        }


@dataclass
class RenderResult:
    """Outcome of rendering one request's segments.

    ``clips`` follows input segment order. ``failures`` is only populated
    when the pipeline runs with the continue-on-error policy.
    """

    job_id: str
    clips: list[ClipArtifact] = field(default_factory=list)
    failures: list[ClipFailure] = field(default_factory=list)
    rejected: list[HighlightSegment] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True if every accepted segment produced a clip."""
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "clips": [c.to_dict() for c in self.clips],
            "failures": [f.to_dict() for f in self.failures],
            "rejected": [s.to_dict() for s in self.rejected],
        }
