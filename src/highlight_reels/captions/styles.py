"""Caption styling.

Two styles exist, one per caption mode: a drawtext style for static
burn-in captions and an ASS ``force_style`` for timed subtitle overlays.
Values here are raw; escaping for the filter graph happens when the filter
string is serialized.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


def ffmpeg_color(hex_color: str, opacity: float = 1.0) -> str:
    """Convert a hex color to FFmpeg's 0xRRGGBBAA form.

    Args:
        hex_color: Color as hex string, with or without "#"
        opacity: Opacity value 0.0-1.0

    Returns:
        FFmpeg color string
    """
    alpha = int(round(opacity * 255))
    return f"0x{hex_color.lstrip('#').upper()}{alpha:02X}"


def ass_color(hex_color: str, opacity: float = 1.0) -> str:
    """Convert a hex RGB color to ASS &HAABBGGRR form.

    ASS stores colors blue-first and alpha inverted (00 = opaque).
    """
    value = hex_color.lstrip("#").upper()
    red, green, blue = value[0:2], value[2:4], value[4:6]
    alpha = 255 - int(round(opacity * 255))
    return f"&H{alpha:02X}{blue}{green}{red}"


class StaticCaptionStyle(BaseModel):
    """drawtext style for static burn-in captions.

    Bold yellow text with a black outline and soft shadow, centered
    horizontally in the lower third of the frame.
    """

    font_family: str = "Arial"
    # A font file takes precedence over the family name when set
    font_file: str | None = None
    font_size: int = 48
    font_color: str = "FFFF00"
    border_color: str = "000000"
    border_width: int = 3
    shadow_color: str = "000000"
    shadow_opacity: float = 0.6
    shadow_x: int = 3
    shadow_y: int = 3
    x: str = "(w-text_w)/2"
    y: str = "h*0.7"
    line_spacing: int = 10
    max_chars_per_line: int = Field(default=30, ge=1)
    uppercase: bool = True

    def to_drawtext_params(self, text: str, font_path: str | None = None) -> dict[str, str]:
        """Build drawtext parameters for already-wrapped caption text.

        Args:
            text: Caption text, lines separated by newlines
            font_path: Font file, already normalized for the filter graph

        Returns:
            Ordered dict of drawtext options
        """
        params: dict[str, str] = {"text": text}

        if font_path:
            params["fontfile"] = font_path
        else:
            params["font"] = self.font_family

        params.update({
            "fontsize": str(self.font_size),
            "fontcolor": ffmpeg_color(self.font_color),
            "borderw": str(self.border_width),
            "bordercolor": ffmpeg_color(self.border_color),
        })

        if (self.shadow_x, self.shadow_y) != (0, 0):
            params["shadowcolor"] = ffmpeg_color(self.shadow_color, self.shadow_opacity)
            params["shadowx"] = str(self.shadow_x)
            params["shadowy"] = str(self.shadow_y)

        params.update({
            "x": self.x,
            "y": self.y,
            "fix_bounds": "1",
            "line_spacing": str(self.line_spacing),
            # Text is literal, no %{...} expansion
            "expansion": "none",
        })
        return params


class SubtitleStyle(BaseModel):
    """ASS style applied to timed subtitle overlays.

    Sizes and margins are in libass script units (288 lines high for SRT).
    """

    font_name: str = "Arial"
    font_size: int = 20
    primary_color: str = "FFFF00"
    outline_color: str = "000000"
    outline_width: int = 2
    shadow: int = 1
    bold: bool = True
    # Numpad layout, 2 = bottom center
    alignment: int = 2
    margin_v: int = 60

    def to_force_style(self) -> str:
        """Render as the subtitles filter's force_style value."""
        fields = [
            ("FontName", self.font_name),
            ("FontSize", str(self.font_size)),
            ("PrimaryColour", ass_color(self.primary_color)),
            ("OutlineColour", ass_color(self.outline_color)),
            ("BorderStyle", "1"),
            ("Outline", str(self.outline_width)),
            ("Shadow", str(self.shadow)),
            ("Bold", "1" if self.bold else "0"),
            ("Alignment", str(self.alignment)),
            ("MarginV", str(self.margin_v)),
        ]
        return ",".join(f"{key}={value}" for key, value in fields)


DEFAULT_STATIC_STYLE = StaticCaptionStyle()
DEFAULT_SUBTITLE_STYLE = SubtitleStyle()
