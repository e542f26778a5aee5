import math
import os
import re
from typing import Optional

_SIZE_UNITS = ("B", "KB", "MB", "GB")

# [...], (...) and {...} groups, e.g. "[1080p]" or "(2019)"
_BRACKETED = re.compile(r"\[[^\]]*\]|\([^)]*\)|\{[^}]*\}")
_SEPARATORS = re.compile(r"[_\-.]+")


def format_duration(seconds: Optional[float]) -> str:
    """Formats seconds as M:SS, or H:MM:SS from one hour on."""
    if not seconds or not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    total = int(seconds)
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def format_file_size(size_bytes: int) -> str:
    """Human readable size with one decimal (1536 -> '1.5 KB')."""
    if size_bytes < 1024:
        return f"{max(size_bytes, 0)} B"
    value = float(size_bytes)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {_SIZE_UNITS[unit]}"


def clean_title(filename: str) -> str:
    """
    Derives a display title from a raw filename.

    "my_holiday-video.[1080p].mp4" -> "My Holiday Video"
    Falls back to the raw filename when nothing is left.
    """
    stem, _ = os.path.splitext(filename)
    title = _BRACKETED.sub(" ", stem)
    title = _SEPARATORS.sub(" ", title)
    words = [w[:1].upper() + w[1:] for w in title.split()]
    return " ".join(words) or filename
