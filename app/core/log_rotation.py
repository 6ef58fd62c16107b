"""
Log Formatters and Daily Rotating File Handler

File layout inside the log directory:
    app-2025-01-31.log      first segment of the day
    app-2025-01-31.1.log    next segment once the size limit is reached
    app-current.log         symlink to the segment being written
    .audit.json             every segment created, used for retention

Author: Khalil_Bannouri
Version: 1.0.0
"""

import json
import logging
import os
import re
from datetime import datetime, timedelta, timezone
from logging.handlers import BaseRotatingHandler
from pathlib import Path
from typing import Any, Callable, Optional


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": record.process,
        }

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["err"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line console format."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if context:
            message += f" │ {json.dumps(context, ensure_ascii=False, default=str)}"
        return message


class DailyRotatingFileHandler(BaseRotatingHandler):
    """
    File handler that starts a new file every day and every ``max_bytes``.

    Segments older than ``retention_days`` (according to the audit file) are
    removed whenever a new segment is opened.
    """

    def __init__(
        self,
        directory: Path,
        prefix: str = "app",
        max_bytes: int = 10 * 1024 * 1024,
        retention_days: int = 30,
        symlink_name: str = "app-current.log",
        audit_name: str = ".audit.json",
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

        self.prefix = prefix
        self.max_bytes = max_bytes
        self.retention_days = retention_days
        self.symlink_path = self.directory / symlink_name
        self.audit_path = self.directory / audit_name
        self._clock = clock
        self._segment_re = re.compile(
            rf"^{re.escape(prefix)}-(\d{{4}}-\d{{2}}-\d{{2}})(?:\.(\d+))?\.log$"
        )

        self.current_date = self._today()
        self.segment = self._latest_segment(self.current_date)

        path = self.segment_path(self.current_date, self.segment)
        super().__init__(str(path), mode="a", encoding="utf-8", delay=False)
        self._segment_opened(path)

    # -------------------------------------------------------------------------
    # Naming
    # -------------------------------------------------------------------------

    def _today(self) -> str:
        return self._clock().strftime("%Y-%m-%d")

    def segment_path(self, date: str, index: int) -> Path:
        suffix = f".{index}" if index else ""
        return self.directory / f"{self.prefix}-{date}{suffix}.log"

    def _latest_segment(self, date: str) -> int:
        """Highest segment index already on disk for ``date`` (0 if none)."""
        latest = 0
        for entry in self.directory.iterdir():
            match = self._segment_re.match(entry.name)
            if match and match.group(1) == date:
                latest = max(latest, int(match.group(2) or 0))
        return latest

    # -------------------------------------------------------------------------
    # Rollover
    # -------------------------------------------------------------------------

    def shouldRollover(self, record: logging.LogRecord) -> bool:
        if self._today() != self.current_date:
            return True

        if self.stream is None:
            self.stream = self._open()

        msg = f"{self.format(record)}{self.terminator}"
        self.stream.seek(0, 2)
        position = self.stream.tell()
        # An empty segment always accepts the record, however large
        return position > 0 and position + len(msg.encode("utf-8")) > self.max_bytes

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None

        today = self._today()
        if today != self.current_date:
            self.current_date = today
            self.segment = self._latest_segment(today)
            if self.segment_path(today, self.segment).exists():
                self.segment += 1
        else:
            self.segment += 1

        path = self.segment_path(self.current_date, self.segment)
        self.baseFilename = os.path.abspath(path)
        self.stream = self._open()
        self._segment_opened(path)

    def _segment_opened(self, path: Path) -> None:
        self._update_symlink(path)
        audit = self._record_in_audit(path)
        self._prune(audit)

    # -------------------------------------------------------------------------
    # Symlink & audit
    # -------------------------------------------------------------------------

    def _update_symlink(self, target: Path) -> None:
        tmp = self.symlink_path.with_name(f".{self.symlink_path.name}.tmp")
        try:
            if os.path.lexists(tmp):
                tmp.unlink()
            os.symlink(target.name, tmp)
            os.replace(tmp, self.symlink_path)
        except OSError:
            # Filesystem without symlink support; the dated files are still written
            return

    def _load_audit(self) -> dict[str, Any]:
        fresh = {"keep": {"days": self.retention_days}, "files": []}
        if not self.audit_path.exists():
            return fresh
        try:
            audit = json.loads(self.audit_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return fresh
        if not isinstance(audit, dict) or not isinstance(audit.get("files"), list):
            return fresh
        audit["keep"] = {"days": self.retention_days}
        return audit

    def _write_audit(self, audit: dict[str, Any]) -> None:
        self.audit_path.write_text(json.dumps(audit, indent=2), encoding="utf-8")

    def _record_in_audit(self, path: Path) -> dict[str, Any]:
        audit = self._load_audit()
        if not any(entry.get("name") == path.name for entry in audit["files"]):
            audit["files"].append({
                "name": path.name,
                "date": self._clock().isoformat(),
            })
            self._write_audit(audit)
        return audit

    def _prune(self, audit: dict[str, Any]) -> list[str]:
        """Delete segments older than the retention window. Returns removed names."""
        cutoff = self._clock() - timedelta(days=self.retention_days)
        active = os.path.basename(self.baseFilename)
        kept, removed = [], []

        for entry in audit["files"]:
            created = _parse_timestamp(entry.get("date"))
            name = entry.get("name", "")
            if created is not None and created < cutoff and name != active:
                (self.directory / name).unlink(missing_ok=True)
                removed.append(name)
            else:
                kept.append(entry)

        if removed:
            audit["files"] = kept
            self._write_audit(audit)
        return removed


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    # Audit entries are written with the handler's clock, which is naive local time
    return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed
