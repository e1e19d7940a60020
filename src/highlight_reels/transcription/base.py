"""Base class for caption timing sources.

A Transcriber turns a clip's audio into word timings relative to the clip
start. Provider-backed and estimated timings are both Transcribers, so the
caption timing engine can swap one for the other at runtime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from highlight_reels.errors import TranscriptionError, TranscriptionFailure
from highlight_reels.models.segment import WordTimestamp

# Timing noise tolerated before words count as overlapping
TIMING_TOLERANCE = 0.05


class Transcriber(ABC):
    """Abstract source of word-level caption timings."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the transcriber name."""
        pass

    @abstractmethod
    def transcribe(
        self,
        audio_path: Path | str,
        expected_duration: float,
    ) -> list[WordTimestamp]:
        """Produce word timings covering ``[0, expected_duration]``.

        Args:
            audio_path: Audio excerpt of one segment
            expected_duration: Segment duration in seconds

        Returns:
            Ordered, non-overlapping word timings

        Raises:
            TranscriptionError: If no timings could be produced
        """
        pass

    def is_available(self) -> bool:
        """Check if the transcriber is configured and usable."""
        return True

    def for_transcript(self, transcript: str) -> "Transcriber":
        """Return a transcriber primed with the segment's known transcript.

        The default ignores the transcript.
        """
        return self


def normalize_words(
    words: Iterable[WordTimestamp],
    duration: float,
    source: str,
) -> list[WordTimestamp]:
    """Clamp provider timings to the clip and check their ordering.

    Empty words are dropped and times are clamped to ``[0, duration]``.
    Small overlaps from provider rounding are trimmed; anything out of
    order beyond that is treated as a malformed response.

    Raises:
        TranscriptionError: MALFORMED if no words remain or order is broken
    """
    normalized: list[WordTimestamp] = []
    previous_end = 0.0

    for word in words:
        text = word.word.strip()
        if not text:
            continue

        start = min(max(word.start, 0.0), duration)
        end = min(max(word.end, 0.0), duration)

        if end < start or start + TIMING_TOLERANCE < previous_end:
            raise TranscriptionError(
                f"Word timings from {source} are out of order at '{text}' "
                f"({word.start:.3f}-{word.end:.3f})",
                kind=TranscriptionFailure.MALFORMED,
                context={"service": source},
            )

        start = max(start, previous_end)
        end = max(end, start)
        normalized.append(WordTimestamp(word=text, start=start, end=end))
        previous_end = end

    if not normalized:
        raise TranscriptionError(
            f"No words in response from {source}",
            kind=TranscriptionFailure.MALFORMED,
            context={"service": source},
        )

    return normalized
