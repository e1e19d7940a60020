"""Tests for render configuration."""

import json
import pytest
from pathlib import Path

from highlight_reels.config import (
    DEFAULT_MIN_CLIP_DURATION,
    CaptionSettings,
    RenderConfig,
    load_render_config,
    save_render_config,
)
from highlight_reels.errors import ConfigurationError
from highlight_reels.video.portrait import AspectRatio


class TestRenderConfig:
    """Tests for RenderConfig defaults and validation."""

    def test_defaults(self):
        config = RenderConfig()

        assert config.min_clip_duration == DEFAULT_MIN_CLIP_DURATION == 20.0
        assert config.proposal_min_duration == 30.0
        assert config.proposal_max_duration == 60.0
        assert config.aspect_ratio == AspectRatio.VERTICAL_9_16
        assert config.max_workers == 1
        assert config.failure_policy == "abort"
        assert config.delete_source is True
        assert config.captions.enabled is True
        assert config.captions.require_timed is False

    def test_proposal_range_independent_of_minimum(self):
        """Test that the proposal range may start below the acceptance minimum."""
        config = RenderConfig(proposal_min_duration=10.0, proposal_max_duration=15.0)

        assert config.min_clip_duration == 20.0

    def test_invalid_proposal_range(self):
        with pytest.raises(ValueError):
            RenderConfig(proposal_min_duration=60.0, proposal_max_duration=30.0)

    def test_invalid_failure_policy(self):
        with pytest.raises(ValueError):
            RenderConfig(failure_policy="retry")

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            RenderConfig(max_workers=0)

    def test_invalid_group_size(self):
        with pytest.raises(ValueError):
            CaptionSettings(group_size=0)


class TestEncodingParams:
    """Tests for deriving encoding settings from the config."""

    def test_vertical_scales_to_target(self):
        params = RenderConfig().encoding_params()

        assert params.target_size == (1080, 1920)
        assert params.video_codec == "libx264"
        assert params.video_crf == 23

    def test_original_keeps_size(self):
        params = RenderConfig(aspect_ratio=AspectRatio.ORIGINAL).encoding_params()

        assert params.target_size is None
        assert "-s" not in params.to_args()

    def test_overrides(self):
        params = RenderConfig(video_crf=18, audio_bitrate="128k").encoding_params()

        args = params.to_args()
        assert args[args.index("-crf") + 1] == "18"
        assert args[args.index("-b:a") + 1] == "128k"


class TestConfigFiles:
    """Tests for loading and saving config files."""

    def test_save_and_load(self, tmp_path: Path):
        config = RenderConfig(
            output_dir=tmp_path / "clips",
            max_workers=3,
            failure_policy="continue",
            captions=CaptionSettings(estimate_only=True, language="en"),
        )

        path = save_render_config(config, tmp_path / "conf" / "render.json")
        loaded = load_render_config(path)

        assert loaded == config
        assert not path.with_name("render.json.tmp").exists()

    def test_partial_file_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "render.json"
        path.write_text(json.dumps({"min_clip_duration": 25}))

        config = load_render_config(path)

        assert config.min_clip_duration == 25.0
        assert config.failure_policy == "abort"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_render_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "render.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_render_config(path)

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "render.json"
        path.write_text(json.dumps({"video_crf": 99}))

        with pytest.raises(ConfigurationError) as exc_info:
            load_render_config(path)

        assert exc_info.value.context["path"] == str(path)
