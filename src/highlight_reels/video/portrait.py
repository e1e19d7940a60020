"""Vertical crop geometry for social media clips.

Landscape sources are cut to a centered 9:16 slice of full height. The
same geometry is available as plain numbers, for a known frame size, and as
FFmpeg crop expressions evaluated by the engine against the real input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class AspectRatio(str, Enum):
    """Output aspect ratios."""

    VERTICAL_9_16 = "9:16"  # Shorts, TikTok, Reels
    ORIGINAL = "original"  # Keep the source framing

    @property
    def is_vertical(self) -> bool:
        return self == AspectRatio.VERTICAL_9_16


# Width and height parts of the vertical target ratio
VERTICAL_WIDTH = 9
VERTICAL_HEIGHT = 16


@dataclass(frozen=True)
class CropGeometry:
    """A crop rectangle in source pixels."""

    width: int
    height: int
    x: int
    y: int

    def to_filter_params(self) -> dict[str, str]:
        """Crop parameters with fixed pixel values."""
        return {
            "w": str(self.width),
            "h": str(self.height),
            "x": str(self.x),
            "y": str(self.y),
        }


def calculate_vertical_crop(source_width: int, source_height: int) -> CropGeometry:
    """Calculate the centered 9:16 crop of a frame.

    The crop keeps the full height. Its width is ``floor(ih * 9/16)`` rounded
    up to an even number, since yuv420p output needs even dimensions, and
    never wider than the source.

    Args:
        source_width: Input width (iw)
        source_height: Input height (ih)

    Returns:
        CropGeometry, e.g. 1920x1080 -> w=608, h=1080, x=656, y=0
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Invalid frame size: {source_width}x{source_height}")

    width = math.floor(source_height * VERTICAL_WIDTH / VERTICAL_HEIGHT)
    if width % 2:
        width += 1
    width = min(width, source_width)

    return CropGeometry(
        width=width,
        height=source_height,
        x=(source_width - width) // 2,
        y=0,
    )


def vertical_crop_expressions() -> dict[str, str]:
    """Crop parameters as FFmpeg expressions matching calculate_vertical_crop.

    ``ow`` is the crop filter's own evaluated output width. Values are raw
    option values; filtergraph escaping happens at serialization.
    """
    return {
        "w": f"min(iw,2*ceil(floor(ih*{VERTICAL_WIDTH}/{VERTICAL_HEIGHT})/2))",
        "h": "ih",
        "x": "(iw-ow)/2",
        "y": "0",
    }
