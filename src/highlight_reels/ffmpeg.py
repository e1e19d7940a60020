"""FFmpeg wrapper for clip rendering.

Every call is a blocking subprocess bounded by an explicit timeout. Failures
are reported as RenderEngineError carrying the tail of FFmpeg's stderr.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from pydantic import BaseModel, Field

from highlight_reels.errors import RenderEngineError, RenderFailure
from highlight_reels.ffmpeg_binary import FFmpegConfig, get_ffmpeg_path, subprocess_flags
from highlight_reels.logging import get_logger
from highlight_reels.video.filters import FilterSpec

logger = get_logger(__name__)


class EncodingParams(BaseModel):
    """Output encoding settings for rendered clips."""

    video_codec: str = "libx264"
    video_preset: str = "fast"  # Speed/quality tradeoff
    video_crf: int = Field(default=23, ge=0, le=51)  # Lower = better, 18-28 typical
    pixel_format: str = "yuv420p"

    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    # Final frame size, e.g. (1080, 1920); None keeps the filtered size
    target_size: tuple[int, int] | None = None

    def to_args(self) -> list[str]:
        args = [
            "-c:v", self.video_codec,
            "-preset", self.video_preset,
            "-crf", str(self.video_crf),
            "-pix_fmt", self.pixel_format,
        ]
        if self.target_size is not None:
            width, height = self.target_size
            args.extend(["-s", f"{width}x{height}"])
        args.extend(["-c:a", self.audio_codec, "-b:a", self.audio_bitrate])
        return args


class FFmpegWrapper:
    """Wrapper for the FFmpeg calls made while rendering highlights.

    Args:
        config: Binary location configuration.

    Raises:
        RenderEngineError: NOT_FOUND if FFmpeg cannot be located.
    """

    def __init__(self, config: FFmpegConfig | None = None) -> None:
        self._config = config or FFmpegConfig()
        ffmpeg_path = get_ffmpeg_path(self._config)

        if ffmpeg_path is None:
            raise RenderEngineError(
                "FFmpeg not found. Please install imageio-ffmpeg or add FFmpeg to PATH.",
                kind=RenderFailure.NOT_FOUND,
            )
        self._ffmpeg_path = ffmpeg_path

    @property
    def ffmpeg_path(self) -> str:
        """Get path to FFmpeg executable."""
        return self._ffmpeg_path

    def _run_ffmpeg(
        self,
        args: list[str],
        timeout: float = 600,
    ) -> subprocess.CompletedProcess:
        """Run FFmpeg with the given arguments.

        Args:
            args: Command-line arguments (excluding ffmpeg executable).
            timeout: Timeout in seconds.

        Returns:
            CompletedProcess result.

        Raises:
            RenderEngineError: If FFmpeg is missing, times out or exits non-zero.
        """
        cmd = [self._ffmpeg_path, "-hide_banner", "-nostdin"] + args
        logger.debug("Running FFmpeg", extra={"ffmpeg_args": " ".join(args)})

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                creationflags=subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise RenderEngineError(
                f"FFmpeg timed out after {timeout} seconds",
                kind=RenderFailure.TIMEOUT,
            ) from e
        except FileNotFoundError as e:
            raise RenderEngineError(
                f"FFmpeg not found at {self._ffmpeg_path}",
                kind=RenderFailure.NOT_FOUND,
            ) from e
        except OSError as e:
            raise RenderEngineError(f"Failed to run FFmpeg: {e}") from e

        if result.returncode != 0:
            # FFmpeg writes its diagnostics to stderr
            raise RenderEngineError(
                f"FFmpeg exited with code {result.returncode}",
                diagnostic=result.stderr or result.stdout or "Unknown error",
                context={"returncode": result.returncode},
            )

        return result

    def extract_audio(
        self,
        input_path: str | Path,
        output_path: str | Path,
        start_time: float,
        duration: float,
        timeout: float = 120,
    ) -> Path:
        """Cut a segment's audio into a mono 16 kHz MP3 for transcription.

        Args:
            input_path: Path to source video.
            output_path: Path for the audio file.
            start_time: Segment start in seconds.
            duration: Segment duration in seconds.
            timeout: Timeout in seconds.

        Returns:
            Path to the extracted audio.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        args = [
            "-y",
            "-ss", f"{start_time:.3f}",
            "-i", str(input_path),
            "-t", f"{duration:.3f}",
            "-vn",
            "-acodec", "libmp3lame",
            "-ar", "16000",
            "-ac", "1",
            "-b:a", "64k",
            str(output_path),
        ]
        self._run_ffmpeg(args, timeout=timeout)

        if not output_path.exists():
            raise RenderEngineError(
                f"Audio file was not created: {output_path}",
                kind=RenderFailure.MISSING_OUTPUT,
            )
        return output_path

    def build_render_args(
        self,
        input_path: Path,
        output_path: Path,
        start_time: float,
        duration: float,
        filter_spec: FilterSpec,
        encoding: EncodingParams,
    ) -> list[str]:
        """Build FFmpeg arguments for rendering one clip."""
        args = [
            "-y",
            # Input seeking (before -i for fast seeking)
            "-ss", f"{start_time:.3f}",
            "-i", str(input_path),
            "-t", f"{duration:.3f}",
        ]

        if filter_spec:
            args.extend(["-vf", filter_spec.to_filter_string()])

        args.extend(encoding.to_args())
        args.extend(["-movflags", "+faststart"])
        args.append(str(output_path))
        return args

    def render_clip(
        self,
        input_path: str | Path,
        output_path: str | Path,
        start_time: float,
        duration: float,
        filter_spec: FilterSpec,
        encoding: EncodingParams | None = None,
        timeout: float = 600,
    ) -> Path:
        """Trim, filter and encode one clip.

        Args:
            input_path: Path to source video.
            output_path: Path for the rendered clip.
            start_time: Offset into the source in seconds.
            duration: Clip duration in seconds.
            filter_spec: Video filters to apply.
            encoding: Output encoding settings.
            timeout: Timeout in seconds.

        Returns:
            Path to the rendered clip.

        Raises:
            RenderEngineError: If FFmpeg fails or produces no output.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        args = self.build_render_args(
            input_path,
            output_path,
            start_time,
            duration,
            filter_spec,
            encoding or EncodingParams(),
        )
        self._run_ffmpeg(args, timeout=timeout)

        # Verify output was created
        if not output_path.exists():
            raise RenderEngineError(
                f"Output file was not created: {output_path}",
                kind=RenderFailure.MISSING_OUTPUT,
            )

        return output_path
