"""Highlight Reels - vertical, captioned social clips from highlight segments.

Takes a source video and a list of highlight segments, and renders each
segment as a 9:16 clip with either timed subtitles or burned-in captions.
"""

__version__ = "0.1.0"
