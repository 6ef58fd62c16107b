"""
Log Tail Reader

Reads the last lines of the current log file for GET /health/logs.
"""

import re
from pathlib import Path
from typing import Optional

DEFAULT_LINES = 200
MIN_LINES = 1
MAX_LINES = 1000

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LINE_BREAK = re.compile(r"\r?\n")


def parse_lines(raw: Optional[str], default: int = DEFAULT_LINES) -> int:
    """
    Number of lines requested, clamped to [MIN_LINES, MAX_LINES].

    Only the leading integer is read ("25abc" is 25). Missing, non-numeric
    and zero values fall back to ``default``.
    """
    value = default
    if raw is not None:
        match = _LEADING_INT.match(str(raw))
        if match and int(match.group(1)) != 0:
            value = int(match.group(1))
    return max(MIN_LINES, min(MAX_LINES, value))


def tail_lines(path: Path, count: int) -> list[str]:
    """Last ``count`` non-empty lines of ``path``."""
    content = path.read_text(encoding="utf-8", errors="replace")
    lines = [line for line in _LINE_BREAK.split(content) if line]
    return lines[-count:] if count > 0 else []
