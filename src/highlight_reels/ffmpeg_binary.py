"""FFmpeg binary resolution for highlight-reels.

The rendering engine location is an explicit configuration value handed to
the pipeline, never a process-wide constant. When no path is configured the
binary bundled with imageio-ffmpeg is used, falling back to PATH.
"""

from __future__ import annotations

import platform
import shutil
import subprocess
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, Field


class FFmpegInfo(NamedTuple):
    """Information about the resolved FFmpeg binary."""

    path: str
    version: str
    available: bool
    source: str  # "custom", "bin", "imageio", "system", or "not_found"


class FFmpegConfig(BaseModel):
    """Where to find the FFmpeg executable."""

    custom_ffmpeg_path: str | None = Field(
        default=None,
        description="Explicit path to the FFmpeg executable",
    )
    prefer_system: bool = Field(
        default=False,
        description="Prefer FFmpeg from PATH over the bundled binary",
    )


def _executable_name() -> str:
    return "ffmpeg.exe" if platform.system() == "Windows" else "ffmpeg"


def subprocess_flags() -> int:
    """Platform-specific creation flags that keep Windows consoles hidden."""
    if platform.system() == "Windows":
        return subprocess.CREATE_NO_WINDOW
    return 0


def get_bin_directory() -> Path:
    """Directory inside the package where a custom FFmpeg can be dropped."""
    return Path(__file__).parent / "bin"


def _get_bin_ffmpeg() -> str | None:
    ffmpeg_path = get_bin_directory() / _executable_name()
    if ffmpeg_path.exists():
        return str(ffmpeg_path)
    return None


def _get_ffmpeg_from_imageio() -> str | None:
    try:
        import imageio_ffmpeg
        return imageio_ffmpeg.get_ffmpeg_exe()
    except (ImportError, RuntimeError):
        return None


def _get_system_ffmpeg() -> str | None:
    return shutil.which("ffmpeg")


def _resolve(config: FFmpegConfig) -> tuple[str | None, str]:
    if config.custom_ffmpeg_path and Path(config.custom_ffmpeg_path).exists():
        return config.custom_ffmpeg_path, "custom"

    if config.prefer_system:
        system_path = _get_system_ffmpeg()
        if system_path:
            return system_path, "system"

    bin_path = _get_bin_ffmpeg()
    if bin_path:
        return bin_path, "bin"

    imageio_path = _get_ffmpeg_from_imageio()
    if imageio_path:
        return imageio_path, "imageio"

    system_path = _get_system_ffmpeg()
    if system_path:
        return system_path, "system"

    return None, "not_found"


def get_ffmpeg_path(config: FFmpegConfig | None = None) -> str | None:
    """Get the path to the FFmpeg executable.

    Searches in order:
    1. Custom path from config
    2. System PATH, if ``prefer_system`` is set
    3. Package ``bin`` directory
    4. imageio-ffmpeg bundled binary
    5. System PATH

    Args:
        config: Optional binary location configuration.

    Returns:
        Path to FFmpeg executable, or None if not found.
    """
    path, _ = _resolve(config or FFmpegConfig())
    return path


def _get_ffmpeg_version(ffmpeg_path: str) -> str | None:
    try:
        result = subprocess.run(
            [ffmpeg_path, "-version"],
            capture_output=True,
            text=True,
            timeout=10,
            creationflags=subprocess_flags(),
        )
    except (subprocess.TimeoutExpired, OSError):
        return None

    if result.returncode != 0:
        return None

    # "ffmpeg version 6.0-static https://..."
    first_line = result.stdout.split("\n")[0]
    if "version" in first_line.lower():
        parts = first_line.split("version")
        if len(parts) > 1 and parts[1].strip():
            return parts[1].strip().split()[0]
    return first_line.strip()


def get_ffmpeg_info(config: FFmpegConfig | None = None) -> FFmpegInfo:
    """Resolve FFmpeg and report where it came from and its version."""
    path, source = _resolve(config or FFmpegConfig())

    if path is None:
        return FFmpegInfo(path="", version="", available=False, source="not_found")

    version = _get_ffmpeg_version(path) or "unknown"
    return FFmpegInfo(path=path, version=version, available=True, source=source)


def verify_ffmpeg(config: FFmpegConfig | None = None) -> tuple[bool, str]:
    """Verify FFmpeg is available and runs.

    Returns:
        Tuple of (success, message).
    """
    info = get_ffmpeg_info(config)

    if not info.available:
        return (False, "FFmpeg not found. Install imageio-ffmpeg or add FFmpeg to PATH.")

    if info.version == "unknown":
        return (False, f"FFmpeg found at {info.path} but did not report a version")

    return (True, f"FFmpeg {info.version} available ({info.source}): {info.path}")
