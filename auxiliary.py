#!/usr/bin/env python3
"""
Auxiliary utility functions for Sarosis

Formatting and parsing helpers shared by the CLI and the reports.
"""

import pathlib
import re
from datetime import timedelta
from typing import Optional


class InvalidArgumentError(ValueError):
    """Raised when a size or age given on the command line cannot be parsed"""


def format_bytes(size_bytes: int) -> str:
    """Format byte size into human-readable string

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.2 GiB", "345.0 MiB", "12.0 KiB", or "789 B"
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GiB"
    if size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MiB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    return f"{size_bytes} B"


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format file path for display by replacing home directory with ~

    Args:
        path: File path to format
        home_path: Home directory path (defaults to platform home)

    Returns:
        Path with a leading home directory replaced by ~
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())

    if path == home_path or path.startswith(home_path.rstrip("/") + "/"):
        return "~" + path[len(home_path.rstrip("/")) :]
    return path


def expand_home(path: str) -> pathlib.Path:
    """Expand a leading ~ and make the path absolute"""
    return pathlib.Path(path).expanduser().absolute()


def truncate_path(path: str, max_length: int = 50) -> str:
    """Truncate long paths for display

    Args:
        path: Path to truncate
        max_length: Maximum length before truncation

    Returns:
        Truncated path with ... in the middle if too long
    """
    if len(path) <= max_length:
        return path

    available = max_length - 3  # Account for "..."
    start_len = available // 2
    end_len = available - start_len

    return f"{path[:start_len]}...{path[-end_len:]}"


def parse_size(value: str) -> int:
    """Parse a human-readable size string like '10M' into bytes"""
    value = value.strip().upper().removesuffix("IB").removesuffix("B") or "0"
    multipliers = {"K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}
    try:
        if value[-1] in multipliers:
            return int(float(value[:-1]) * multipliers[value[-1]])
        return int(value)
    except ValueError:
        raise InvalidArgumentError(f"Invalid size: {value!r} (expected e.g. 500K, 10M, 1G)") from None


_AGE_RE = re.compile(r"^\s*(\d+)\s*([hdwmy])\s*$", re.IGNORECASE)
_AGE_UNITS = {"h": timedelta(hours=1), "d": timedelta(days=1), "w": timedelta(weeks=1), "m": timedelta(days=30), "y": timedelta(days=365)}


def parse_age(value: str) -> timedelta:
    """Parse an age like '30d', '3m' or '1y' into a timedelta

    Units: h (hours), d (days), w (weeks), m (30 days), y (365 days)
    """
    match = _AGE_RE.match(value)
    if not match:
        raise InvalidArgumentError(f"Invalid age: {value!r} (expected e.g. 12h, 30d, 2w, 3m, 1y)")
    count, unit = int(match.group(1)), match.group(2).lower()
    return count * _AGE_UNITS[unit]
