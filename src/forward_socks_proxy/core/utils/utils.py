"""Common formatting helpers for the console UI."""

from typing import Final

BYTES_PER_KB: Final = 1024
SIZE_UNITS: Final = ("B", "KB", "MB", "GB", "TB")


def format_bytes(bytes_: float) -> str:
    """Format a byte count with a binary unit, e.g. ``1.5 KB``."""
    for unit in SIZE_UNITS[:-1]:
        if abs(bytes_) < BYTES_PER_KB:
            return f"{bytes_:.1f} {unit}"
        bytes_ /= BYTES_PER_KB
    return f"{bytes_:.1f} {SIZE_UNITS[-1]}"


def format_duration(seconds: float) -> str:
    """Format seconds as ``H:MM:SS``."""
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
