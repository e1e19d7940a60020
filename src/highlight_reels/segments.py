"""Segment validation.

The validator is the only authority over which proposed segments are
rendered. Segments shorter than the minimum clip duration are rejected and
reported; an empty result is terminal for the request.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterable

from highlight_reels.config import DEFAULT_MIN_CLIP_DURATION
from highlight_reels.errors import NoValidSegmentsError, ValidationError
from highlight_reels.logging import get_logger
from highlight_reels.models.segment import HighlightSegment

logger = get_logger(__name__)

RejectCallback = Callable[[HighlightSegment, str], None]


def validate_segments(
    segments: Iterable[HighlightSegment],
    min_duration: float = DEFAULT_MIN_CLIP_DURATION,
    on_reject: RejectCallback | None = None,
) -> list[HighlightSegment]:
    """Keep segments at least ``min_duration`` seconds long, in input order.

    Args:
        segments: Candidate segments
        min_duration: Minimum clip duration in seconds
        on_reject: Called with each rejected segment and the reason

    Returns:
        Accepted segments, unchanged and in their original order

    Raises:
        NoValidSegmentsError: If no segment is accepted
    """
    accepted: list[HighlightSegment] = []
    candidates = 0

    for segment in segments:
        candidates += 1
        if segment.duration >= min_duration:
            accepted.append(segment)
            continue

        reason = f"duration {segment.duration:.2f}s is below the {min_duration:g}s minimum"
        logger.warning(
            f"Rejected segment {segment.start:.2f}-{segment.end:.2f}: {reason}",
            extra={"start": segment.start, "end": segment.end},
        )
        if on_reject is not None:
            on_reject(segment, reason)

    if not accepted:
        raise NoValidSegmentsError(candidates, min_duration)

    logger.info(f"Accepted {len(accepted)} of {candidates} segments")
    return accepted


def parse_segments(data: Any) -> list[HighlightSegment]:
    """Build segments from decoded JSON.

    Accepts either a list of segment objects or an object with a
    ``segments`` (or ``clips``) list.

    Raises:
        ValidationError: If the data is not a segment list or a segment is invalid
    """
    if isinstance(data, dict):
        data = data.get("segments", data.get("clips"))

    if not isinstance(data, list):
        raise ValidationError("Expected a list of segments")

    segments = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValidationError(f"Segment {i} is not an object", context={"index": i})
        segments.append(HighlightSegment.from_dict(item))
    return segments


def load_segments(path: Path) -> list[HighlightSegment]:
    """Load segments from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the file is not valid JSON or holds invalid segments
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Segments file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid segments JSON: {e}", context={"path": str(path)}) from e

    return parse_segments(data)
