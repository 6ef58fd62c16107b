"""
Pydantic Schemas for API Responses

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# HEALTH
# =============================================================================

class PingResponse(BaseModel):
    """Liveness probe."""
    status: str = Field(default="ok", examples=["ok"])
    timestamp: datetime


class MemoryUsage(BaseModel):
    rss: Optional[int] = Field(None, description="Resident set size in bytes")
    rss_peak: Optional[int] = Field(None, description="Peak resident set size in bytes")


class FormattedMemory(BaseModel):
    rss: Optional[str] = None
    rss_peak: Optional[str] = None


class UptimeBreakdown(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int
    human: str = Field(..., examples=["0d 1h 2m 3s"])


class SystemInfo(BaseModel):
    memory_total: Optional[int] = None
    memory_free: Optional[int] = None
    memory_total_formatted: Optional[str] = None
    memory_free_formatted: Optional[str] = None
    load_average: Optional[List[float]] = None


class CpuInfo(BaseModel):
    count: Optional[int] = None
    user_seconds: float
    system_seconds: float


class HostInfo(BaseModel):
    hostname: str
    platform: str
    release: str
    arch: str
    python_version: str
    pid: int


class NetworkInfo(BaseModel):
    interfaces: List[str] = []
    addresses: List[str] = []


class HealthResponse(BaseModel):
    """
    Process diagnostics snapshot.

    The sections after ``timestamp`` are only present in the detailed variant.
    """
    status: str = Field(default="ok", examples=["ok"])
    uptime_seconds: int
    memory: MemoryUsage
    env: str = Field(..., examples=["development"])
    port: int = Field(..., examples=[3000])
    timestamp: datetime

    uptime: Optional[UptimeBreakdown] = None
    memory_formatted: Optional[FormattedMemory] = None
    system: Optional[SystemInfo] = None
    cpu: Optional[CpuInfo] = None
    host: Optional[HostInfo] = None
    network: Optional[NetworkInfo] = None


class HealthErrorResponse(BaseModel):
    status: str = "error"
    error: str


# =============================================================================
# LOGS
# =============================================================================

class LogTailResponse(BaseModel):
    """Tail of the current log file."""
    path: str
    lines: int = Field(..., description="Number of lines returned")
    tail: List[str]


class LogErrorResponse(BaseModel):
    error: str
    path: Optional[str] = None
    detail: Optional[str] = None


# =============================================================================
# ERRORS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
