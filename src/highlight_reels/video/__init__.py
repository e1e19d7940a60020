"""Video framing for social media output.

Filter graph building lives in ``highlight_reels.video.filters``.
"""

from highlight_reels.video.portrait import (
    AspectRatio,
    CropGeometry,
    calculate_vertical_crop,
    vertical_crop_expressions,
)

__all__ = [
    "AspectRatio",
    "CropGeometry",
    "calculate_vertical_crop",
    "vertical_crop_expressions",
]
