"""Phrase grouping and SRT subtitle generation.

Word timings are grouped into short phrases, one caption screen each, and
written as an SRT file for the subtitles overlay filter.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Sequence

from highlight_reels.models.segment import SubtitleEntry, WordTimestamp

DEFAULT_GROUP_SIZE = 3


def format_timestamp(seconds: float) -> str:
    """Format seconds as an SRT timestamp (HH:MM:SS,mmm).

    Every field is floored, milliseconds are never rounded up.

    >>> format_timestamp(3661.234)
    '01:01:01,234'
    """
    if seconds < 0:
        raise ValueError(f"Timestamp cannot be negative: {seconds}")

    hours = math.floor(seconds / 3600)
    minutes = math.floor((seconds % 3600) / 60)
    secs = math.floor(seconds % 60)
    # Rounding to 6 places absorbs float noise (0.234 % 1 * 1000 == 233.99999...)
    millis = min(math.floor(round((seconds % 1) * 1000, 6)), 999)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def group_words_into_phrases(
    words: Sequence[WordTimestamp],
    group_size: int = DEFAULT_GROUP_SIZE,
) -> list[SubtitleEntry]:
    """Group consecutive words into upper-cased phrases.

    Every phrase has exactly ``group_size`` words except possibly the last.
    Word order is preserved and no word is dropped.

    Args:
        words: Ordered word timings
        group_size: Words per phrase

    Returns:
        Subtitle entries numbered from 1
    """
    if group_size < 1:
        raise ValueError(f"Group size must be at least 1, got {group_size}")

    entries = []
    for index, offset in enumerate(range(0, len(words), group_size), start=1):
        phrase = words[offset:offset + group_size]
        entries.append(SubtitleEntry(
            index=index,
            start_time=format_timestamp(phrase[0].start),
            end_time=format_timestamp(phrase[-1].end),
            text=" ".join(w.word for w in phrase).upper(),
        ))

    return entries


def generate_srt_content(entries: Sequence[SubtitleEntry]) -> str:
    """Serialize entries as SRT: index, timing line, text, blank line."""
    return "".join(f"{entry.to_srt_block()}\n\n" for entry in entries)


def write_srt_file(
    words: Sequence[WordTimestamp],
    output_path: Path,
    group_size: int = DEFAULT_GROUP_SIZE,
) -> list[SubtitleEntry]:
    """Group words into phrases and write them to an SRT file.

    Args:
        words: Ordered word timings relative to the clip start
        output_path: SRT file to create
        group_size: Words per phrase

    Returns:
        The entries that were written
    """
    entries = group_words_into_phrases(words, group_size)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(generate_srt_content(entries), encoding="utf-8")
    return entries
