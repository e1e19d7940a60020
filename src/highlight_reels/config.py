"""Configuration loading and management for highlight-reels.

Render settings are pydantic models that can be loaded from and saved to
JSON files. Binary locations and credentials are passed in explicitly;
nothing here reads process-wide state except the API key lookup done by
the transcriber itself.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from highlight_reels.captions.styles import StaticCaptionStyle, SubtitleStyle
from highlight_reels.captions.subtitles import DEFAULT_GROUP_SIZE
from highlight_reels.errors import ConfigurationError
from highlight_reels.ffmpeg import EncodingParams
from highlight_reels.ffmpeg_binary import FFmpegConfig
from highlight_reels.video.portrait import AspectRatio

# Segments shorter than this are rejected by the validator
DEFAULT_MIN_CLIP_DURATION = 20.0

# Length range requested from whatever proposes segments upstream.
# Independent of DEFAULT_MIN_CLIP_DURATION; only the validator decides acceptance.
DEFAULT_PROPOSAL_MIN_DURATION = 30.0
DEFAULT_PROPOSAL_MAX_DURATION = 60.0


class CaptionSettings(BaseModel):
    """Caption settings for rendered clips."""

    enabled: bool = True
    # Raise instead of degrading to static captions when timing fails
    require_timed: bool = False
    # Spread the transcript evenly instead of calling a provider
    estimate_only: bool = False
    group_size: int = Field(default=DEFAULT_GROUP_SIZE, ge=1)
    static_style: StaticCaptionStyle = Field(default_factory=StaticCaptionStyle)
    subtitle_style: SubtitleStyle = Field(default_factory=SubtitleStyle)

    # Provider settings
    transcription_model: str = "whisper-1"
    language: str | None = None


class RenderConfig(BaseModel):
    """Settings for one rendering pipeline."""

    output_dir: Path = Path("output")
    temp_dir: Path = Path("temp")

    min_clip_duration: float = Field(default=DEFAULT_MIN_CLIP_DURATION, gt=0)
    proposal_min_duration: float = DEFAULT_PROPOSAL_MIN_DURATION
    proposal_max_duration: float = DEFAULT_PROPOSAL_MAX_DURATION

    aspect_ratio: AspectRatio = AspectRatio.VERTICAL_9_16
    target_width: int = 1080
    target_height: int = 1920

    # Video encoding settings
    video_codec: str = "libx264"
    video_preset: str = "fast"
    video_crf: int = Field(default=23, ge=0, le=51)

    # Audio encoding settings
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    # Seconds before an external call is abandoned
    render_timeout: float = Field(default=600.0, gt=0)
    transcription_timeout: float = Field(default=120.0, gt=0)

    # 1 renders segments strictly one after another
    max_workers: int = Field(default=1, ge=1)
    # "abort" stops at the first render failure, "continue" records it and moves on
    failure_policy: Literal["abort", "continue"] = "abort"
    delete_source: bool = True

    captions: CaptionSettings = Field(default_factory=CaptionSettings)
    ffmpeg: FFmpegConfig = Field(default_factory=FFmpegConfig)

    @model_validator(mode="after")
    def _check_proposal_range(self) -> "RenderConfig":
        if self.proposal_max_duration < self.proposal_min_duration:
            raise ValueError(
                "proposal_max_duration must not be less than proposal_min_duration"
            )
        return self

    def encoding_params(self) -> EncodingParams:
        """Encoding settings for the configured output format."""
        target_size = None
        if self.aspect_ratio.is_vertical:
            target_size = (self.target_width, self.target_height)

        return EncodingParams(
            video_codec=self.video_codec,
            video_preset=self.video_preset,
            video_crf=self.video_crf,
            audio_codec=self.audio_codec,
            audio_bitrate=self.audio_bitrate,
            target_size=target_size,
        )


def load_render_config(config_path: Path) -> RenderConfig:
    """Load render configuration from a JSON file.

    Args:
        config_path: Path to the JSON file

    Returns:
        RenderConfig with the file's settings over the defaults

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ConfigurationError: If the file is not valid JSON or has invalid values
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Render config not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        return RenderConfig(**data)
    except (json.JSONDecodeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid render config: {e}",
            context={"path": str(config_path)},
        ) from e


def save_render_config(config: RenderConfig, config_path: Path) -> Path:
    """Save render configuration to a JSON file with atomic write.

    Returns:
        Path to the saved config file
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = config_path.with_name(config_path.name + ".tmp")

    # Atomic write: write to temp file, then rename
    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(mode="json"), f, indent=2)

    temp_path.replace(config_path)
    return config_path
