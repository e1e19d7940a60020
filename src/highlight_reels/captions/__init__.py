"""Caption styling and subtitle generation.

Static captions are drawn with FFmpeg's drawtext filter; timed captions
are written as SRT files and overlaid with the subtitles filter.
"""

from highlight_reels.captions.styles import (
    DEFAULT_STATIC_STYLE,
    DEFAULT_SUBTITLE_STYLE,
    StaticCaptionStyle,
    SubtitleStyle,
    ass_color,
    ffmpeg_color,
)
from highlight_reels.captions.subtitles import (
    DEFAULT_GROUP_SIZE,
    format_timestamp,
    generate_srt_content,
    group_words_into_phrases,
    write_srt_file,
)

__all__ = [
    "DEFAULT_STATIC_STYLE",
    "DEFAULT_SUBTITLE_STYLE",
    "StaticCaptionStyle",
    "SubtitleStyle",
    "ass_color",
    "ffmpeg_color",
    "DEFAULT_GROUP_SIZE",
    "format_timestamp",
    "generate_srt_content",
    "group_words_into_phrases",
    "write_srt_file",
]
