"""
Line-oriented JSON stream parsing.

Agent stdout arrives in arbitrary chunks. ``LineBuffer`` reassembles them
into complete lines; ``parse_json_line`` turns one line into an object or
skips it.
"""

from __future__ import annotations

import json
from typing import Any


class LineBuffer:
    """Accumulates byte chunks and yields complete newline-terminated lines."""

    def __init__(self) -> None:
        self._pending = b""

    def feed(self, chunk: bytes) -> list[str]:
        """
        Add a chunk and return every line it completes.

        Lines are decoded as UTF-8 with replacement, so a multi-byte
        character split across chunks is never corrupted.
        """
        data = self._pending + chunk
        *lines, self._pending = data.split(b"\n")
        return [line.decode("utf-8", errors="replace") for line in lines]

    def flush(self) -> str | None:
        """Return unterminated trailing text, if any, and reset."""
        pending, self._pending = self._pending, b""
        if not pending.strip():
            return None
        return pending.decode("utf-8", errors="replace")


def parse_json_line(line: str) -> dict[str, Any] | None:
    """
    Parse one line of agent output.

    Returns:
        The decoded JSON object, or None for blank lines, invalid JSON and
        non-object values
    """
    if not line.strip():
        return None
    try:
        parsed = json.loads(line)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None
