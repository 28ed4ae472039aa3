"""Formatting utilities for display"""

import os
from typing import Optional


def format_duration(seconds: Optional[float]) -> str:
    """Format an operation duration

    Examples:
        >>> format_duration(0.25)
        '250ms'
        >>> format_duration(65)
        '1m 5s'
    """
    if seconds is None or seconds < 0:
        return "-"
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    return f"{minutes // 60}h {minutes % 60}m"


def format_source(source_key: str, max_length: int = 50) -> str:
    """Shorten a dependency source key for tables

    Local paths under the home directory are shown with ~ and long keys
    keep their end, which names the dependency.

    Args:
        source_key: Canonical source key (path or git URL)
        max_length: Maximum length of the result

    Returns:
        Display string
    """
    home = os.path.expanduser("~")
    if home != "~" and source_key.startswith(home + os.sep):
        source_key = "~" + source_key[len(home):]

    if len(source_key) <= max_length:
        return source_key
    return "..." + source_key[-(max_length - 3):]


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    """Pluralize a word based on count

    Examples:
        >>> pluralize(1, "dependency", "dependencies")
        '1 dependency'
    """
    word = singular if count == 1 else (plural or singular + 's')
    return f"{count} {word}"
