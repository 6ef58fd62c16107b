"""
Process Diagnostics

Collects the numbers behind GET /health: uptime, memory, CPU, host and
network identity. Probes that the host platform does not offer report
None (or an empty list) instead of failing the whole snapshot.

Author: Khalil Bannouri
Version: 1.0.0
"""

import math
import os
import platform
import socket
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

try:
    import resource
except ImportError:  # Windows
    resource = None

def _seconds_since_process_start(
    stat_file: Path = Path("/proc/self/stat"),
    uptime_file: Path = Path("/proc/uptime"),
) -> Optional[float]:
    """
    Age of the current process from procfs, or None where procfs is absent.

    Field 22 of /proc/self/stat is the start time in clock ticks after boot;
    /proc/uptime holds seconds since boot.
    """
    try:
        stat = stat_file.read_text(encoding="utf-8")
        boot_uptime = float(uptime_file.read_text(encoding="utf-8").split()[0])
        # comm (field 2) may contain spaces, so count fields after its ')'
        fields = stat[stat.rindex(")") + 2:].split()
        start_ticks = int(fields[22 - 3])
        ticks = os.sysconf("SC_CLK_TCK")
    except (OSError, ValueError, IndexError, AttributeError):
        return None
    return max(boot_uptime - start_ticks / ticks, 0.0)


# Monotonic time at which the process started; import time where unknown
PROCESS_STARTED = time.monotonic() - (_seconds_since_process_start() or 0.0)

BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB", "PB")


# =============================================================================
# FORMATTING HELPERS
# =============================================================================

def format_bytes(num_bytes: float, decimals: int = 2) -> str:
    """
    Human readable size using 1024 steps.

    >>> format_bytes(0)
    '0 Bytes'
    >>> format_bytes(1536)
    '1.5 KB'
    """
    if num_bytes == 0:
        return "0 Bytes"

    sign = "-" if num_bytes < 0 else ""
    magnitude = abs(num_bytes)
    decimals = max(decimals, 0)

    # floor(log1024(n)) with integer powers, capped at the largest unit
    index = 0
    while index < len(BYTE_UNITS) - 1 and magnitude >= 1024 ** (index + 1):
        index += 1

    value = round(magnitude / (1024 ** index), decimals)
    text = f"{value:.{decimals}f}".rstrip("0").rstrip(".") if decimals else f"{value:.0f}"
    return f"{sign}{text} {BYTE_UNITS[index]}"


def decompose_uptime(seconds: float) -> dict[str, Any]:
    """Split a duration into whole days, hours, minutes and seconds."""
    total = max(int(math.floor(seconds)), 0) if math.isfinite(seconds) else 0

    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    return {
        "days": days,
        "hours": hours,
        "minutes": minutes,
        "seconds": secs,
        "human": f"{days}d {hours}h {minutes}m {secs}s",
    }


# =============================================================================
# PROBES
# =============================================================================

def process_uptime() -> float:
    return time.monotonic() - PROCESS_STARTED


def _status_kb(field_name: str) -> Optional[int]:
    """Read a ``kB`` field from /proc/self/status (Linux only)."""
    status_file = Path("/proc/self/status")
    if not status_file.exists():
        return None
    for line in status_file.read_text(encoding="utf-8").splitlines():
        if line.startswith(f"{field_name}:"):
            return int(line.split()[1]) * 1024
    return None


def memory_usage() -> dict[str, Optional[int]]:
    """Resident set size now and at its peak, in bytes."""
    rss = _status_kb("VmRSS")
    peak = _status_kb("VmHWM")

    if peak is None and resource is not None:
        max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        # ru_maxrss is bytes on macOS, kilobytes elsewhere
        peak = max_rss if sys.platform == "darwin" else max_rss * 1024
    if rss is None:
        rss = peak

    return {"rss": rss, "rss_peak": peak}


def system_memory() -> dict[str, Optional[int]]:
    names = getattr(os, "sysconf_names", {})
    if "SC_PAGE_SIZE" not in names or "SC_PHYS_PAGES" not in names:
        return {"total": None, "free": None}

    page = os.sysconf("SC_PAGE_SIZE")
    total = page * os.sysconf("SC_PHYS_PAGES")
    free = page * os.sysconf("SC_AVPHYS_PAGES") if "SC_AVPHYS_PAGES" in names else None
    return {"total": total, "free": free}


def load_average() -> Optional[list[float]]:
    if not hasattr(os, "getloadavg"):
        return None
    try:
        return [round(v, 2) for v in os.getloadavg()]
    except OSError:
        return None


def network_info(hostname: str) -> dict[str, list[str]]:
    interfaces: list[str] = []
    if hasattr(socket, "if_nameindex"):
        try:
            interfaces = [name for _, name in socket.if_nameindex()]
        except OSError:
            interfaces = []

    try:
        infos = socket.getaddrinfo(hostname, None)
        addresses = sorted({info[4][0] for info in infos})
    except (socket.gaierror, OSError):
        addresses = []

    return {"interfaces": interfaces, "addresses": addresses}


# =============================================================================
# SNAPSHOTS
# =============================================================================

def basic_snapshot(env: str, port: int) -> dict[str, Any]:
    """Uptime, memory and environment."""
    return {
        "status": "ok",
        "uptime_seconds": round(process_uptime()),
        "memory": memory_usage(),
        "env": env,
        "port": port,
        "timestamp": datetime.now(timezone.utc),
    }


def detailed_snapshot(env: str, port: int) -> dict[str, Any]:
    """basic_snapshot plus formatted values, system, CPU, host and network."""
    snapshot = basic_snapshot(env, port)
    hostname = socket.gethostname()
    times = os.times()
    sys_mem = system_memory()

    snapshot["uptime"] = decompose_uptime(process_uptime())
    snapshot["memory_formatted"] = {
        key: format_bytes(value) if value is not None else None
        for key, value in snapshot["memory"].items()
    }
    snapshot["system"] = {
        "memory_total": sys_mem["total"],
        "memory_free": sys_mem["free"],
        "memory_total_formatted": format_bytes(sys_mem["total"]) if sys_mem["total"] is not None else None,
        "memory_free_formatted": format_bytes(sys_mem["free"]) if sys_mem["free"] is not None else None,
        "load_average": load_average(),
    }
    snapshot["cpu"] = {
        "count": os.cpu_count(),
        "user_seconds": round(times.user, 3),
        "system_seconds": round(times.system, 3),
    }
    snapshot["host"] = {
        "hostname": hostname,
        "platform": platform.system(),
        "release": platform.release(),
        "arch": platform.machine(),
        "python_version": platform.python_version(),
        "pid": os.getpid(),
    }
    snapshot["network"] = network_info(hostname)
    return snapshot
