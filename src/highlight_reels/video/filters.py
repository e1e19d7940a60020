"""FFmpeg filter graph construction.

A FilterSpec is the ordered list of video filters applied while a clip is
rendered: an optional vertical crop followed by an optional caption stage
(drawtext for static captions, subtitles for timed ones).

FFmpeg unescapes a ``-vf`` string twice. The filtergraph parser splits on
``,`` ``;`` ``[`` ``]`` and then each filter splits its options on ``:``;
both passes honor backslash escapes and single quotes. Option values are
therefore stored raw and escaped for both passes when serialized.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PureWindowsPath

from highlight_reels.captions.styles import (
    DEFAULT_STATIC_STYLE,
    DEFAULT_SUBTITLE_STYLE,
    StaticCaptionStyle,
    SubtitleStyle,
)
from highlight_reels.models.clip import CaptionMode
from highlight_reels.video.portrait import AspectRatio, vertical_crop_expressions

# Characters with meaning when a filter splits its option list
OPTION_SPECIAL_CHARS = "\\':"
# Characters with meaning when the filtergraph is split into filters
GRAPH_SPECIAL_CHARS = "\\'[],;"


def _backslash_escape(value: str, special: str) -> str:
    return "".join(f"\\{c}" if c in special else c for c in value)


def escape_filter_value(value: str) -> str:
    """Escape a literal option value for an FFmpeg filtergraph string."""
    return _backslash_escape(_backslash_escape(value, OPTION_SPECIAL_CHARS), GRAPH_SPECIAL_CHARS)


def escape_filter_text(text: str) -> str:
    """Escape caption text for embedding in a filter option.

    ``It's: great, really`` becomes ``It\\\\\\'s\\\\: great\\, really``.
    """
    return escape_filter_value(text)


def normalize_filter_path(path: str | Path) -> str:
    """Render a file path with forward slashes, as FFmpeg filters expect.

    Windows paths keep their drive letter; the drive colon is escaped along
    with every other special character at serialization.
    """
    text = str(path)
    if "\\" in text:
        text = PureWindowsPath(text).as_posix()
    return text


def escape_filter_path(path: str | Path) -> str:
    """Normalize and escape a file path for embedding in a filter option."""
    return escape_filter_value(normalize_filter_path(path))


def wrap_text(text: str, max_chars_per_line: int = 30) -> str:
    """Greedy word wrap.

    A word joins the current line if the line plus a separating space and
    the word stays within ``max_chars_per_line``. Words longer than the
    limit get a line of their own.

    Returns:
        Wrapped text with newlines
    """
    lines: list[str] = []
    current = ""

    for word in text.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_chars_per_line:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word

    if current:
        lines.append(current)

    return "\n".join(lines)


@dataclass(frozen=True)
class FilterOp:
    """A single named filter with ordered, unescaped options."""

    name: str
    options: tuple[tuple[str, str], ...] = ()

    @classmethod
    def create(cls, name: str, options: dict[str, str]) -> "FilterOp":
        return cls(name=name, options=tuple(options.items()))

    def option(self, key: str) -> str | None:
        """Look up an option's raw value."""
        for name, value in self.options:
            if name == key:
                return value
        return None

    def to_filter_string(self) -> str:
        if not self.options:
            return self.name
        args = ":".join(f"{key}={escape_filter_value(value)}" for key, value in self.options)
        return f"{self.name}={args}"


@dataclass(frozen=True)
class FilterSpec:
    """An ordered, immutable chain of filters for one render job."""

    ops: tuple[FilterOp, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.ops)

    def __len__(self) -> int:
        return len(self.ops)

    @property
    def names(self) -> list[str]:
        return [op.name for op in self.ops]

    def get(self, name: str) -> FilterOp | None:
        """First filter with the given name, if any."""
        return next((op for op in self.ops if op.name == name), None)

    def to_filter_string(self) -> str:
        """Serialize as a ``-vf`` filter chain."""
        return ",".join(op.to_filter_string() for op in self.ops)


def build_crop_filter(aspect_ratio: AspectRatio) -> FilterOp | None:
    """Crop stage: a centered vertical slice for 9:16 output, nothing otherwise."""
    if not aspect_ratio.is_vertical:
        return None
    return FilterOp.create("crop", vertical_crop_expressions())


def build_static_caption_filter(
    caption_text: str,
    style: StaticCaptionStyle = DEFAULT_STATIC_STYLE,
) -> FilterOp | None:
    """Burn-in stage: upper-cased, wrapped text for the whole clip."""
    text = caption_text.upper() if style.uppercase else caption_text
    text = wrap_text(text, style.max_chars_per_line)
    if not text:
        return None

    font_path = normalize_filter_path(style.font_file) if style.font_file else None
    return FilterOp.create("drawtext", style.to_drawtext_params(text, font_path))


def build_subtitle_filter(
    subtitle_path: str | Path,
    style: SubtitleStyle = DEFAULT_SUBTITLE_STYLE,
) -> FilterOp:
    """Timed overlay stage: render an SRT file with a forced style."""
    return FilterOp.create("subtitles", {
        "filename": normalize_filter_path(subtitle_path),
        "force_style": style.to_force_style(),
    })


def build_filter_spec(
    aspect_ratio: AspectRatio,
    caption_mode: CaptionMode,
    caption_payload: str | Path | None = None,
    static_style: StaticCaptionStyle = DEFAULT_STATIC_STYLE,
    subtitle_style: SubtitleStyle = DEFAULT_SUBTITLE_STYLE,
) -> FilterSpec:
    """Build the filter chain for one render job.

    Args:
        aspect_ratio: Output aspect ratio; 9:16 adds the crop stage
        caption_mode: Which caption stage, if any, to add
        caption_payload: Caption text for STATIC, subtitle file for TIMED
        static_style: Style for static captions
        subtitle_style: Style for timed subtitles

    Returns:
        FilterSpec with crop first, captions second

    Raises:
        ValueError: If a caption mode is given without its payload
    """
    ops: list[FilterOp] = []

    crop = build_crop_filter(aspect_ratio)
    if crop is not None:
        ops.append(crop)

    if caption_mode == CaptionMode.STATIC:
        if caption_payload is None:
            raise ValueError("Static captions need caption text")
        drawtext = build_static_caption_filter(str(caption_payload), static_style)
        if drawtext is not None:
            ops.append(drawtext)
    elif caption_mode == CaptionMode.TIMED:
        if caption_payload is None:
            raise ValueError("Timed captions need a subtitle file")
        ops.append(build_subtitle_filter(caption_payload, subtitle_style))

    return FilterSpec(ops=tuple(ops))
