"""Tests for crop geometry, caption styles and filter graph building."""

import pytest
from pathlib import Path

from highlight_reels.captions.styles import (
    StaticCaptionStyle,
    SubtitleStyle,
    ass_color,
    ffmpeg_color,
)
from highlight_reels.models.clip import CaptionMode
from highlight_reels.video.filters import (
    FilterOp,
    FilterSpec,
    build_crop_filter,
    build_filter_spec,
    build_static_caption_filter,
    build_subtitle_filter,
    escape_filter_path,
    escape_filter_text,
    normalize_filter_path,
    wrap_text,
)
from highlight_reels.video.portrait import (
    AspectRatio,
    calculate_vertical_crop,
    vertical_crop_expressions,
)

WHITESPACE = " \n\t\r"


def get_token(buf: str, term: str) -> tuple[str, str]:
    """Read one token the way FFmpeg's av_get_token does.

    Backslash escapes the next character, single quotes quote literally,
    and surrounding unescaped whitespace is dropped.

    Returns:
        (token, remaining input starting at the terminator)
    """
    i = 0
    while i < len(buf) and buf[i] in WHITESPACE:
        i += 1

    out: list[str] = []
    protected = 0
    while i < len(buf) and buf[i] not in term:
        c = buf[i]
        i += 1
        if c == "\\" and i < len(buf):
            out.append(buf[i])
            i += 1
            protected = len(out)
        elif c == "'":
            while i < len(buf) and buf[i] != "'":
                out.append(buf[i])
                i += 1
            if i < len(buf):
                i += 1
            protected = len(out)
        else:
            out.append(c)

    while len(out) > protected and out[-1] in WHITESPACE:
        out.pop()

    return "".join(out), buf[i:]


def parse_filter_chain(chain: str) -> list[tuple[str, dict[str, str]]]:
    """Parse a -vf chain into (filter name, options) pairs, as FFmpeg would."""
    filters = []
    rest = chain
    while rest:
        name, rest = get_token(rest, "=,;[")
        args = ""
        if rest.startswith("="):
            args, rest = get_token(rest[1:], "[],;")

        options = {}
        while args:
            key, _, remainder = args.partition("=")
            value, args = get_token(remainder, ":")
            options[key] = value
            if args.startswith(":"):
                args = args[1:]

        filters.append((name, options))
        if not rest.startswith(","):
            break
        rest = rest[1:]

    return filters


class TestVerticalCrop:
    """Tests for 9:16 crop geometry."""

    def test_1080p(self):
        crop = calculate_vertical_crop(1920, 1080)

        assert (crop.width, crop.height, crop.x, crop.y) == (608, 1080, 656, 0)

    def test_720p(self):
        crop = calculate_vertical_crop(1280, 720)

        assert crop.width == 406  # floor(405) rounded up to even
        assert crop.x == (1280 - 406) // 2

    def test_already_vertical(self):
        """Test that the crop never exceeds the source width."""
        crop = calculate_vertical_crop(1080, 1920)

        assert crop.width == 1080
        assert crop.x == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            calculate_vertical_crop(0, 1080)

    def test_filter_params(self):
        params = calculate_vertical_crop(1920, 1080).to_filter_params()
        assert params == {"w": "608", "h": "1080", "x": "656", "y": "0"}

    def test_expressions(self):
        expressions = vertical_crop_expressions()

        assert expressions["h"] == "ih"
        assert expressions["x"] == "(iw-ow)/2"
        assert expressions["y"] == "0"

    def test_aspect_ratio(self):
        assert AspectRatio("9:16").is_vertical is True
        assert AspectRatio.ORIGINAL.is_vertical is False


class TestWrapText:
    """Tests for greedy word wrapping."""

    def test_short_text_single_line(self):
        assert wrap_text("hello world", 30) == "hello world"

    def test_wraps_at_limit(self):
        assert wrap_text("aaaa bbbb cccc", 9) == "aaaa bbbb\ncccc"

    def test_exact_fit(self):
        assert wrap_text("abc def", 7) == "abc def"

    def test_long_word_own_line(self):
        assert wrap_text("a supercalifragilistic b", 10) == "a\nsupercalifragilistic\nb"

    def test_collapses_whitespace(self):
        assert wrap_text("  one   two  ", 30) == "one two"

    def test_empty(self):
        assert wrap_text("", 30) == ""

    def test_lines_within_limit(self):
        text = "this is a somewhat longer caption that needs to wrap across lines"
        for line in wrap_text(text, 30).split("\n"):
            assert len(line) <= 30


class TestEscaping:
    """Tests for filter graph escaping."""

    def test_caption_text_escaped(self):
        escaped = escape_filter_text("It's: great, really")

        assert escaped == "It\\\\\\'s\\\\: great\\, really"

    @pytest.mark.parametrize("text", [
        "It's: great, really",
        "semi;colon [brackets] back\\slash",
        "quotes ' inside ' twice",
        "percent %{pts} stays literal",
        "TWO\nLINES",
    ])
    def test_round_trip(self, text):
        """Test that FFmpeg's parser recovers the literal text."""
        op = FilterOp.create("drawtext", {"text": text, "fontsize": "48"})

        [(name, options)] = parse_filter_chain(op.to_filter_string())

        assert name == "drawtext"
        assert options == {"text": text, "fontsize": "48"}

    def test_windows_path_normalized(self):
        assert normalize_filter_path("C:\\Users\\me\\clip.srt") == "C:/Users/me/clip.srt"

    def test_posix_path_unchanged(self):
        assert normalize_filter_path(Path("/tmp/job/clip.srt")) == "/tmp/job/clip.srt"

    def test_drive_colon_escaped(self):
        assert escape_filter_path("C:\\temp\\a.srt") == "C:\\\\\\:/temp/a.srt"

    def test_path_round_trip(self):
        op = FilterOp.create("subtitles", {"filename": normalize_filter_path("D:\\it's here\\a,b.srt")})

        [(_, options)] = parse_filter_chain(op.to_filter_string())

        assert options["filename"] == "D:/it's here/a,b.srt"


class TestCaptionStyles:
    """Tests for caption style rendering."""

    def test_ffmpeg_color(self):
        assert ffmpeg_color("FFFF00") == "0xFFFF00FF"
        assert ffmpeg_color("#000000", 0.6) == "0x00000099"

    def test_ass_color(self):
        assert ass_color("FFFF00") == "&H0000FFFF"
        assert ass_color("FF0000", 0.0) == "&HFF0000FF"

    def test_drawtext_defaults(self):
        params = StaticCaptionStyle().to_drawtext_params("HELLO")

        assert params["text"] == "HELLO"
        assert params["font"] == "Arial"
        assert params["fontsize"] == "48"
        assert params["fontcolor"] == "0xFFFF00FF"
        assert params["borderw"] == "3"
        assert params["shadowcolor"] == "0x00000099"
        assert params["x"] == "(w-text_w)/2"
        assert params["y"] == "h*0.7"
        assert params["fix_bounds"] == "1"
        assert params["expansion"] == "none"

    def test_drawtext_font_file(self):
        params = StaticCaptionStyle().to_drawtext_params("HI", font_path="/fonts/Bold.ttf")

        assert params["fontfile"] == "/fonts/Bold.ttf"
        assert "font" not in params

    def test_no_shadow(self):
        params = StaticCaptionStyle(shadow_x=0, shadow_y=0).to_drawtext_params("HI")
        assert "shadowcolor" not in params

    def test_force_style(self):
        assert SubtitleStyle().to_force_style() == (
            "FontName=Arial,FontSize=20,PrimaryColour=&H0000FFFF,"
            "OutlineColour=&H00000000,BorderStyle=1,Outline=2,Shadow=1,"
            "Bold=1,Alignment=2,MarginV=60"
        )


class TestFilterBuilders:
    """Tests for individual filter stages."""

    def test_crop_filter_string(self):
        op = build_crop_filter(AspectRatio.VERTICAL_9_16)

        assert op.to_filter_string() == (
            "crop=w=min(iw\\,2*ceil(floor(ih*9/16)/2)):h=ih:x=(iw-ow)/2:y=0"
        )

    def test_no_crop_for_original(self):
        assert build_crop_filter(AspectRatio.ORIGINAL) is None

    def test_static_caption_uppercased_and_wrapped(self):
        op = build_static_caption_filter(
            "this caption is long enough to need wrapping",
            StaticCaptionStyle(max_chars_per_line=20),
        )

        assert op.name == "drawtext"
        assert op.option("text") == "THIS CAPTION IS LONG\nENOUGH TO NEED\nWRAPPING"

    def test_static_caption_keeps_case(self):
        op = build_static_caption_filter("Mixed Case", StaticCaptionStyle(uppercase=False))
        assert op.option("text") == "Mixed Case"

    def test_static_caption_empty(self):
        assert build_static_caption_filter("   ") is None

    def test_static_caption_font_file_normalized(self):
        op = build_static_caption_filter("hi", StaticCaptionStyle(font_file="C:\\Fonts\\a.ttf"))
        assert op.option("fontfile") == "C:/Fonts/a.ttf"

    def test_subtitle_filter(self):
        op = build_subtitle_filter(Path("/tmp/job_clip_00.srt"))

        assert op.name == "subtitles"
        assert op.option("filename") == "/tmp/job_clip_00.srt"
        assert op.option("force_style").startswith("FontName=Arial")

    def test_subtitle_filter_string_escapes_force_style(self):
        """Test that force_style commas survive the chain parser."""
        op = build_subtitle_filter("/tmp/a.srt")
        spec = FilterSpec(ops=(op,))

        [(name, options)] = parse_filter_chain(spec.to_filter_string())

        assert name == "subtitles"
        assert options["force_style"] == SubtitleStyle().to_force_style()

    def test_option_missing(self):
        assert FilterOp("scale").option("w") is None
        assert FilterOp("null").to_filter_string() == "null"


class TestBuildFilterSpec:
    """Tests for assembling a job's filter chain."""

    def test_crop_only(self):
        spec = build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.NONE)

        assert spec.names == ["crop"]
        assert len(spec) == 1

    def test_nothing(self):
        spec = build_filter_spec(AspectRatio.ORIGINAL, CaptionMode.NONE)

        assert not spec
        assert spec.to_filter_string() == ""

    def test_crop_then_static(self):
        spec = build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.STATIC, "It's: great, really")

        assert spec.names == ["crop", "drawtext"]
        parsed = parse_filter_chain(spec.to_filter_string())
        assert [name for name, _ in parsed] == ["crop", "drawtext"]
        assert parsed[0][1]["w"] == "min(iw,2*ceil(floor(ih*9/16)/2))"
        assert parsed[1][1]["text"] == "IT'S: GREAT, REALLY"

    def test_crop_then_subtitles(self, tmp_path: Path):
        srt = tmp_path / "clip.srt"
        spec = build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.TIMED, srt)

        assert spec.names == ["crop", "subtitles"]
        assert spec.get("subtitles").option("filename") == srt.as_posix()

    def test_exactly_one_caption_stage(self):
        static = build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.STATIC, "hi")
        timed = build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.TIMED, "/tmp/a.srt")

        assert static.get("subtitles") is None
        assert timed.get("drawtext") is None

    def test_missing_payload(self):
        with pytest.raises(ValueError):
            build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.STATIC)

        with pytest.raises(ValueError):
            build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.TIMED)

    def test_spec_is_immutable(self):
        spec = build_filter_spec(AspectRatio.VERTICAL_9_16, CaptionMode.NONE)

        with pytest.raises(AttributeError):
            spec.ops = ()
