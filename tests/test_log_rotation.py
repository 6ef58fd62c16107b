"""
Tests for the daily rotating file handler and log formatters.
"""

import json
import logging
import os
import uuid
from datetime import datetime, timedelta

import pytest

from app.core.log_rotation import DailyRotatingFileHandler, HumanFormatter, JsonFormatter

symlinks = pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, 0))


@pytest.fixture
def make_logger(tmp_path, clock):
    handlers = []

    def factory(**kwargs):
        handler = DailyRotatingFileHandler(tmp_path, clock=clock, **kwargs)
        handler.setFormatter(JsonFormatter())
        logger = logging.getLogger(f"rotation-{uuid.uuid4().hex}")
        logger.propagate = False
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)
        handlers.append(handler)
        return logger, handler

    yield factory

    for handler in handlers:
        handler.close()


def audit_names(directory):
    audit = json.loads((directory / ".audit.json").read_text(encoding="utf-8"))
    return [entry["name"] for entry in audit["files"]]


class TestDailyRotatingFileHandler:
    def test_creates_dated_file(self, tmp_path, make_logger):
        logger, _ = make_logger()
        logger.info("hello")

        assert (tmp_path / "app-2025-03-01.log").exists()
        assert audit_names(tmp_path) == ["app-2025-03-01.log"]

    @symlinks
    def test_symlink_points_to_active_file(self, tmp_path, make_logger):
        logger, _ = make_logger()
        logger.info("hello")

        link = tmp_path / "app-current.log"
        assert os.readlink(link) == "app-2025-03-01.log"
        assert "hello" in link.read_text(encoding="utf-8")

    @symlinks
    def test_size_rollover_starts_new_segment(self, tmp_path, make_logger):
        logger, handler = make_logger(max_bytes=300)
        for i in range(10):
            logger.info(f"message number {i}")

        assert (tmp_path / "app-2025-03-01.1.log").exists()
        assert os.readlink(tmp_path / "app-current.log") == os.path.basename(handler.baseFilename)
        for path in tmp_path.glob("app-2025-03-01*.log"):
            if path.name != "app-current.log":
                assert path.stat().st_size <= 300

    def test_oversized_record_is_written_once(self, tmp_path, make_logger):
        logger, _ = make_logger(max_bytes=10)
        logger.info("x" * 100)

        assert "x" * 100 in (tmp_path / "app-2025-03-01.log").read_text(encoding="utf-8")
        assert not (tmp_path / "app-2025-03-01.1.log").exists()

    @symlinks
    def test_date_change_starts_new_file(self, tmp_path, clock, make_logger):
        logger, _ = make_logger()
        logger.info("day one")

        clock.now += timedelta(days=1)
        logger.info("day two")

        assert (tmp_path / "app-2025-03-02.log").exists()
        assert os.readlink(tmp_path / "app-current.log") == "app-2025-03-02.log"
        assert "day two" not in (tmp_path / "app-2025-03-01.log").read_text(encoding="utf-8")

    def test_retention_removes_old_segments(self, tmp_path, clock, make_logger):
        logger, _ = make_logger(retention_days=30)
        logger.info("old")

        clock.now += timedelta(days=31)
        logger.info("new")

        assert not (tmp_path / "app-2025-03-01.log").exists()
        assert (tmp_path / "app-2025-04-01.log").exists()
        assert audit_names(tmp_path) == ["app-2025-04-01.log"]

    def test_recent_segments_are_kept(self, tmp_path, clock, make_logger):
        logger, _ = make_logger(retention_days=30)
        logger.info("old")

        clock.now += timedelta(days=5)
        logger.info("new")

        assert (tmp_path / "app-2025-03-01.log").exists()

    def test_resumes_latest_segment(self, tmp_path, make_logger):
        (tmp_path / "app-2025-03-01.log").write_text("a\n", encoding="utf-8")
        (tmp_path / "app-2025-03-01.3.log").write_text("b\n", encoding="utf-8")

        _, handler = make_logger()

        assert handler.segment == 3
        assert handler.baseFilename.endswith("app-2025-03-01.3.log")

    def test_corrupt_audit_is_replaced(self, tmp_path, make_logger):
        (tmp_path / ".audit.json").write_text("{not json", encoding="utf-8")

        make_logger()

        assert audit_names(tmp_path) == ["app-2025-03-01.log"]


class TestFormatters:
    def make_record(self, **extra):
        record = logging.LogRecord("app.test", logging.WARNING, __file__, 1, "hi %s", ("there",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter(self):
        line = JsonFormatter().format(self.make_record(context={"req": {"id": "1"}}))
        data = json.loads(line)

        assert data["level"] == "warning"
        assert data["msg"] == "hi there"
        assert data["logger"] == "app.test"
        assert data["context"] == {"req": {"id": "1"}}

    def test_human_formatter_appends_context(self):
        line = HumanFormatter().format(self.make_record(context={"k": "v"}))

        assert "WARNING" in line
        assert "hi there" in line
        assert line.endswith('{"k": "v"}')
