"""Text normalization for catalog fields written to the summary and archive."""
from __future__ import annotations

import re

LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")
UNSAFE_FILENAME_PATTERN = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def collapse_line_breaks(text: str) -> str:
    """Replace each embedded line break with a single space and trim the result."""
    return LINE_BREAK_PATTERN.sub(" ", text or "").strip()


def safe_filename(name: str, fallback: str = "record") -> str:
    cleaned = UNSAFE_FILENAME_PATTERN.sub("_", (name or "").strip()).strip(". ")
    return cleaned or fallback
