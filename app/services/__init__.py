"""
                        Services Module

Helpers behind the operational endpoints.

Services:
    - diagnostics: process, host and network snapshot for /health
    - log_tail: reading the current log file for /health/logs
"""

from app.services.diagnostics import basic_snapshot, detailed_snapshot, format_bytes, decompose_uptime
from app.services.log_tail import parse_lines, tail_lines

__all__ = [
    "basic_snapshot",
    "detailed_snapshot",
    "format_bytes",
    "decompose_uptime",
    "parse_lines",
    "tail_lines",
]
