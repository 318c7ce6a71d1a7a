"""Shared utilities for tileset-tools."""

from __future__ import annotations


def align_up(value: int, boundary: int = 8) -> int:
    """Round value up to the next multiple of boundary.

    Args:
        value: Value to round
        boundary: Alignment boundary

    Returns:
        Smallest multiple of boundary not less than value

    Example:
        >>> align_up(28)
        32
        >>> align_up(32)
        32
    """
    return (value + boundary - 1) // boundary * boundary


def format_size(size: int) -> str:
    """Format byte size as human-readable string.

    Args:
        size: Size in bytes

    Returns:
        Formatted string with appropriate unit (e.g., "1.5 MB")

    Example:
        >>> format_size(1024)
        '1.0 KB'
        >>> format_size(1536)
        '1.5 KB'
        >>> format_size(1048576)
        '1.0 MB'
    """
    if size < 0:
        return "0 B"

    size_float = float(size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_float < 1024.0:
            if unit == "B":
                return f"{int(size_float)} {unit}"
            return f"{size_float:.1f} {unit}"
        size_float /= 1024.0
    return f"{size_float:.1f} PB"
