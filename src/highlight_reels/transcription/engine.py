"""Caption timing engine.

Selects between a provider-backed transcriber and the even-distribution
estimator at runtime. The primary transcriber is tried first; if its
response cannot be used as word timings the estimator takes over. Hard
provider failures are raised for the caller to act on.
"""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple

from highlight_reels.errors import TranscriptionError, TranscriptionFailure
from highlight_reels.logging import get_logger
from highlight_reels.models.segment import WordTimestamp
from highlight_reels.transcription.base import Transcriber
from highlight_reels.transcription.estimate import EstimatedTranscriber

logger = get_logger(__name__)


class TimedWords(NamedTuple):
    """Word timings and the name of the transcriber that produced them."""

    words: list[WordTimestamp]
    source: str


class CaptionTimingEngine:
    """Produce word timings for one clip.

    Args:
        primary: Provider-backed transcriber, or None to always estimate
        fallback: Transcriber used when the primary is unusable
        estimate_only: Skip the primary entirely
    """

    def __init__(
        self,
        primary: Transcriber | None = None,
        fallback: Transcriber | None = None,
        estimate_only: bool = False,
    ):
        self.primary = primary
        self.fallback = fallback or EstimatedTranscriber("")
        self.estimate_only = estimate_only
        self._disabled_reason: str | None = None

    @property
    def primary_enabled(self) -> bool:
        """True if timings will be requested from the primary transcriber."""
        return (
            not self.estimate_only
            and self.primary is not None
            and self._disabled_reason is None
            and self.primary.is_available()
        )

    def disable_primary(self, reason: str) -> None:
        """Stop using the primary transcriber for the rest of this engine's life."""
        if self._disabled_reason is None and self.primary is not None:
            logger.warning(
                f"Disabling {self.primary.name} for remaining segments: {reason}",
                extra={"provider": self.primary.name},
            )
        self._disabled_reason = reason

    def time_words(
        self,
        audio_path: Path | str | None,
        duration: float,
        transcript: str,
    ) -> TimedWords:
        """Produce word timings covering ``[0, duration]``.

        Args:
            audio_path: Audio excerpt of the clip; unused by the estimator
            duration: Clip duration in seconds
            transcript: Known transcript of the clip

        Returns:
            TimedWords with the timings and the transcriber name

        Raises:
            TranscriptionError: On quota, content-blocked, network or timeout
                failures of the primary, or if no timings can be produced
        """
        if self.primary is not None and self.primary_enabled:
            primary = self.primary.for_transcript(transcript)
            try:
                words = primary.transcribe(audio_path, duration)
                return TimedWords(words, primary.name)
            except TranscriptionError as e:
                if e.kind != TranscriptionFailure.MALFORMED:
                    raise
                logger.warning(
                    f"Unusable response from {primary.name}, estimating timings",
                    extra={"provider": primary.name, "detail": e.message},
                )

        fallback = self.fallback.for_transcript(transcript)
        return TimedWords(fallback.transcribe(audio_path, duration), fallback.name)
