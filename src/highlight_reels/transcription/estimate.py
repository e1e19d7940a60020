"""Estimated word timings.

Used when a provider cannot supply reliable timings, or as an explicit
low-fidelity mode. Words are spread evenly across the clip, which is
deterministic for a given transcript and duration.
"""

from __future__ import annotations

import re
from pathlib import Path

from highlight_reels.errors import TranscriptionError, TranscriptionFailure
from highlight_reels.models.segment import WordTimestamp
from highlight_reels.transcription.base import Transcriber

_PUNCTUATION = re.compile(r"[^\w\s]")


def tokenize_transcript(transcript: str) -> list[str]:
    """Split on whitespace and strip punctuation from each token.

    Tokens that are only punctuation are dropped.
    """
    tokens = []
    for raw in transcript.split():
        token = _PUNCTUATION.sub("", raw)
        if token:
            tokens.append(token)
    return tokens


def estimate_word_timings(transcript: str, duration: float) -> list[WordTimestamp]:
    """Distribute transcript words evenly over ``[0, duration]``.

    Word ``i`` of ``n`` spans ``i*duration/n`` to ``(i+1)*duration/n``; the
    last word ends exactly at ``duration``.

    Args:
        transcript: Spoken text of the clip
        duration: Clip duration in seconds

    Returns:
        Contiguous word timings, empty if the transcript has no words
    """
    if duration <= 0:
        raise ValueError(f"Duration must be positive, got {duration}")

    tokens = tokenize_transcript(transcript)
    count = len(tokens)

    words = []
    for i, token in enumerate(tokens):
        # (i+1)*d/n rather than start+step keeps the final end exact
        start = i * duration / count
        end = duration if i == count - 1 else (i + 1) * duration / count
        words.append(WordTimestamp(word=token, start=start, end=end))

    return words


class EstimatedTranscriber(Transcriber):
    """Transcriber that ignores the audio and spreads a known transcript."""

    def __init__(self, transcript: str):
        self.transcript = transcript

    @property
    def name(self) -> str:
        return "estimate"

    def for_transcript(self, transcript: str) -> "EstimatedTranscriber":
        return EstimatedTranscriber(transcript)

    def transcribe(
        self,
        audio_path: Path | str | None,
        expected_duration: float,
    ) -> list[WordTimestamp]:
        words = estimate_word_timings(self.transcript, expected_duration)
        if not words:
            raise TranscriptionError(
                "Transcript has no words to time",
                kind=TranscriptionFailure.MALFORMED,
                context={"service": self.name},
            )
        return words
