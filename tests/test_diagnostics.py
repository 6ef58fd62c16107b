"""
Tests for byte formatting, uptime decomposition and diagnostics snapshots.
"""

import os

import pytest

from app.services import diagnostics
from app.services.diagnostics import (
    _seconds_since_process_start,
    basic_snapshot,
    decompose_uptime,
    detailed_snapshot,
    format_bytes,
)


class TestFormatBytes:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, "0 Bytes"),
            (1, "1 Bytes"),
            (512, "512 Bytes"),
            (1023, "1023 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (1024 ** 2, "1 MB"),
            (1234567, "1.18 MB"),
            (5 * 1024 ** 3, "5 GB"),
            (1024 ** 4, "1 TB"),
            (1024 ** 5, "1 PB"),
            (-2048, "-2 KB"),
        ],
    )
    def test_units(self, value, expected):
        assert format_bytes(value) == expected

    def test_index_clamped_to_largest_unit(self):
        assert format_bytes(1024 ** 6) == "1024 PB"

    def test_decimals(self):
        assert format_bytes(1234567, decimals=3) == "1.177 MB"
        assert format_bytes(1024 * 1024 * 3, decimals=0) == "3 MB"


class TestDecomposeUptime:
    def test_zero(self):
        assert decompose_uptime(0) == {
            "days": 0, "hours": 0, "minutes": 0, "seconds": 0, "human": "0d 0h 0m 0s",
        }

    def test_all_units(self):
        result = decompose_uptime(86400 + 3600 + 60 + 1)
        assert (result["days"], result["hours"], result["minutes"], result["seconds"]) == (1, 1, 1, 1)
        assert result["human"] == "1d 1h 1m 1s"

    def test_fractional_seconds_are_floored(self):
        assert decompose_uptime(59.9)["seconds"] == 59

    def test_negative_and_infinite_clamp_to_zero(self):
        assert decompose_uptime(-5)["human"] == "0d 0h 0m 0s"
        assert decompose_uptime(float("inf"))["human"] == "0d 0h 0m 0s"

    def test_many_days(self):
        result = decompose_uptime(10 * 86400 + 23 * 3600 + 59 * 60 + 59)
        assert result["human"] == "10d 23h 59m 59s"


class TestSnapshots:
    def test_basic_snapshot(self):
        snapshot = basic_snapshot("test", 3000)

        assert snapshot["status"] == "ok"
        assert snapshot["env"] == "test"
        assert snapshot["port"] == 3000
        assert isinstance(snapshot["uptime_seconds"], int)
        assert snapshot["uptime_seconds"] >= 0
        assert set(snapshot["memory"]) == {"rss", "rss_peak"}
        assert "host" not in snapshot

    def test_detailed_snapshot(self):
        snapshot = detailed_snapshot("production", 8080)

        assert snapshot["port"] == 8080
        assert snapshot["host"]["pid"] == os.getpid()
        assert snapshot["cpu"]["count"] == os.cpu_count()
        assert snapshot["uptime"]["human"].endswith("s")
        assert isinstance(snapshot["network"]["interfaces"], list)
        assert isinstance(snapshot["network"]["addresses"], list)
        for key, value in snapshot["memory"].items():
            if value is not None:
                assert snapshot["memory_formatted"][key] == format_bytes(value)

    def test_zero_system_memory_is_formatted(self, monkeypatch):
        monkeypatch.setattr(diagnostics, "system_memory", lambda: {"total": 0, "free": 0})

        snapshot = detailed_snapshot("test", 3000)

        assert snapshot["system"]["memory_total_formatted"] == "0 Bytes"
        assert snapshot["system"]["memory_free_formatted"] == "0 Bytes"


class TestProcessStart:
    def write_proc(self, tmp_path, start_ticks: int, boot_uptime: str):
        # state is field 3; start time is field 22
        after_comm = ["S"] + ["0"] * 18 + [str(start_ticks)] + ["0"] * 5
        stat = tmp_path / "stat"
        stat.write_text("4242 (py worker) " + " ".join(after_comm), encoding="utf-8")
        uptime = tmp_path / "uptime"
        uptime.write_text(f"{boot_uptime} 1234.00\n", encoding="utf-8")
        return stat, uptime

    def test_age_from_procfs(self, tmp_path):
        ticks = os.sysconf("SC_CLK_TCK") if hasattr(os, "sysconf") else pytest.skip("no sysconf")
        stat, uptime = self.write_proc(tmp_path, start_ticks=100 * ticks, boot_uptime="1000.50")

        assert _seconds_since_process_start(stat, uptime) == pytest.approx(900.5)

    def test_missing_procfs(self, tmp_path):
        assert _seconds_since_process_start(tmp_path / "stat", tmp_path / "uptime") is None

    def test_malformed_stat(self, tmp_path):
        (tmp_path / "stat").write_text("garbage", encoding="utf-8")
        (tmp_path / "uptime").write_text("10.0 5.0", encoding="utf-8")

        assert _seconds_since_process_start(tmp_path / "stat", tmp_path / "uptime") is None

    def test_uptime_predates_import_on_linux(self):
        if not os.path.exists("/proc/self/stat"):
            pytest.skip("procfs not available")
        assert _seconds_since_process_start() is not None
        assert diagnostics.process_uptime() >= 0
