"""
Helper utilities for taskweave.

Provides small string and time formatting helpers shared by the result
formatting and the CLI.
"""

from __future__ import annotations

from datetime import timedelta


def preview_text(text: str, length: int, suffix: str = "...") -> str:
    """
    Keep the first ``length`` characters, appending a suffix when cut.

    Unlike ``truncate_string`` the suffix is not counted in ``length``.

    Args:
        text: Input string
        length: Characters kept from the start
        suffix: Marker appended when text was cut

    Returns:
        Preview string
    """
    if len(text) <= length:
        return text
    return text[:length] + suffix


def truncate_string(
    text: str,
    max_length: int,
    suffix: str = "...",
) -> str:
    """
    Truncate a string to a maximum length.

    Args:
        text: Input string
        max_length: Maximum length including suffix
        suffix: Suffix to append when truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix


def single_line(text: str) -> str:
    """Collapse all whitespace runs, including newlines, to single spaces."""
    return " ".join(text.split())


def format_duration(seconds: float) -> str:
    """
    Format seconds as human-readable duration.

    Args:
        seconds: Duration in seconds

    Returns:
        Human-readable string (e.g., "2h 30m 15s")
    """
    if seconds < 0:
        return "0s"

    delta = timedelta(seconds=int(seconds))

    parts = []

    hours, remainder = divmod(delta.seconds + delta.days * 86400, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)
