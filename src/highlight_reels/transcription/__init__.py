"""Caption timing sources.

Word timings come either from a speech-to-text provider or from an even
spread of the known transcript across the clip.
"""

from highlight_reels.transcription.base import Transcriber, normalize_words
from highlight_reels.transcription.engine import CaptionTimingEngine, TimedWords
from highlight_reels.transcription.estimate import (
    EstimatedTranscriber,
    estimate_word_timings,
    tokenize_transcript,
)
from highlight_reels.transcription.whisper_api import WhisperAPITranscriber

__all__ = [
    "Transcriber",
    "normalize_words",
    "CaptionTimingEngine",
    "TimedWords",
    "EstimatedTranscriber",
    "estimate_word_timings",
    "tokenize_transcript",
    "WhisperAPITranscriber",
]
