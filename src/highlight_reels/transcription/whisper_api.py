"""OpenAI Whisper API transcriber.

Requests word-level timestamps for a short clip excerpt. Provider failures
are classified into TranscriptionError kinds; a response without a usable
word list is reported as MALFORMED so the caller can fall back to
estimated timings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from openai import OpenAI

from highlight_reels.errors import (
    ConfigurationError,
    ResourceError,
    TranscriptionError,
    TranscriptionFailure,
    classify_transcription_error,
)
from highlight_reels.logging import get_logger
from highlight_reels.models.segment import WordTimestamp
from highlight_reels.transcription.base import Transcriber, normalize_words

logger = get_logger(__name__)


class WhisperAPITranscriber(Transcriber):
    """Transcriber using OpenAI's Whisper API.

    Requires the OPENAI_API_KEY environment variable or an explicit key.
    Calls are bounded by ``timeout`` and never retried.
    """

    DEFAULT_MODEL = "whisper-1"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        timeout: float = 120.0,
        language: str | None = None,
        prompt: str = "",
    ):
        """Initialize the transcriber.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Transcription model
            timeout: Seconds before a call is abandoned
            language: Optional ISO language hint
            prompt: Optional conditioning text, e.g. the expected transcript
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._model = model
        self._timeout = timeout
        self._language = language
        self.prompt = prompt
        self._client: OpenAI | None = None

    @property
    def name(self) -> str:
        return "whisper_api"

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> OpenAI:
        if self._client is not None:
            return self._client

        if not self._api_key:
            raise ConfigurationError(
                "OpenAI API key not configured. "
                "Set OPENAI_API_KEY environment variable or pass api_key to constructor."
            )

        self._client = OpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=0)
        return self._client

    def for_transcript(self, transcript: str) -> "WhisperAPITranscriber":
        """Return a transcriber sharing this client, conditioned on the transcript."""
        if self.is_available():
            self._get_client()
        bound = WhisperAPITranscriber(
            api_key=self._api_key,
            model=self._model,
            timeout=self._timeout,
            language=self._language,
            prompt=transcript,
        )
        bound._client = self._client
        return bound

    def transcribe(
        self,
        audio_path: Path | str,
        expected_duration: float,
    ) -> list[WordTimestamp]:
        """Transcribe an audio excerpt into word timings.

        Raises:
            ResourceError: If the audio file does not exist
            TranscriptionError: On provider failure or unusable response
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise ResourceError(f"Audio file not found: {audio_path}")

        client = self._get_client()

        try:
            response = self._call_api(client, audio_path)
        except Exception as e:
            raise classify_transcription_error(e, self.name) from e

        words = self._parse_words(response)
        logger.debug(
            f"Received {len(words)} timed words",
            extra={"audio": audio_path.name, "provider": self.name},
        )
        return normalize_words(words, expected_duration, self.name)

    def _call_api(self, client: OpenAI, audio_path: Path) -> Any:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "response_format": "verbose_json",
            "timestamp_granularities": ["word"],
        }
        if self._language:
            kwargs["language"] = self._language
        if self.prompt:
            kwargs["prompt"] = self.prompt

        with open(audio_path, "rb") as audio_file:
            return client.audio.transcriptions.create(file=audio_file, **kwargs)

    def _parse_words(self, response: Any) -> list[WordTimestamp]:
        """Read the word list from a verbose_json response.

        Raises:
            TranscriptionError: MALFORMED if the word list is missing or invalid
        """
        api_words = getattr(response, "words", None)
        if api_words is None and isinstance(response, dict):
            api_words = response.get("words")

        if not isinstance(api_words, (list, tuple)):
            raise TranscriptionError(
                "Response has no word-level timestamps",
                kind=TranscriptionFailure.MALFORMED,
                context={"service": self.name},
            )

        words = []
        try:
            for w in api_words:
                if isinstance(w, dict):
                    words.append(WordTimestamp.from_dict(w))
                else:
                    words.append(WordTimestamp(
                        word=str(w.word),
                        start=float(w.start),
                        end=float(w.end),
                    ))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise TranscriptionError(
                f"Unparseable word timing in response: {e}",
                kind=TranscriptionFailure.MALFORMED,
                context={"service": self.name},
            ) from e

        return words
