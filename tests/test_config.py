"""
Tests for settings parsing and logging setup.
"""

import logging

import pytest
from pydantic import ValidationError

from app.core.config import (
    SILENT,
    EnvironmentMode,
    Settings,
    get_settings,
    resolve_level,
    setup_logging,
)


class TestSettings:
    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("NODE_ENV", "Production")
        monkeypatch.setenv("LOG_LEVEL", "WARN")

        settings = Settings()

        assert settings.port == 8080
        assert settings.node_env == EnvironmentMode.PRODUCTION
        assert settings.is_production
        assert settings.effective_log_level == "warn"

    def test_invalid_environment_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(node_env="qa")

    def test_invalid_log_level_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    @pytest.mark.parametrize(
        "env, expected",
        [("production", "info"), ("development", "debug"), ("staging", "debug")],
    )
    def test_default_log_level_follows_environment(self, env, expected):
        assert Settings(node_env=env, log_level=None).effective_log_level == expected

    def test_empty_log_level_means_unset(self):
        assert Settings(node_env="production", log_level="").log_level is None

    def test_log_file_path(self, tmp_path):
        settings = Settings(log_dir=str(tmp_path))
        assert settings.log_file_path == tmp_path / "app-current.log"

    def test_throttle_defaults(self, monkeypatch):
        monkeypatch.delenv("THROTTLE_LIMIT", raising=False)
        settings = Settings()
        assert (settings.throttle_ttl, settings.throttle_limit) == (60, 120)


@pytest.mark.parametrize(
    "name, level",
    [
        ("trace", logging.DEBUG),
        ("warn", logging.WARNING),
        ("fatal", logging.CRITICAL),
        ("silent", SILENT),
        ("INFO", logging.INFO),
    ],
)
def test_resolve_level(name, level):
    assert resolve_level(name) == level


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_logging(self):
        yield
        setup_logging(get_settings())

    def managed_handlers(self):
        return [h for h in logging.getLogger().handlers if getattr(h, "_app_managed", False)]

    def test_is_idempotent(self, tmp_path):
        settings = Settings(node_env="test", log_dir=str(tmp_path / "logs"))

        setup_logging(settings)
        setup_logging(settings)

        assert len(self.managed_handlers()) == 2

    def test_creates_log_directory_and_symlink(self, tmp_path):
        settings = Settings(node_env="test", log_dir=str(tmp_path / "logs"))

        setup_logging(settings)
        logging.getLogger("app.test").debug("written to file")
        for handler in self.managed_handlers():
            handler.flush()

        assert settings.log_path.is_dir()
        assert "written to file" in settings.log_file_path.read_text(encoding="utf-8")

    def test_console_level(self, tmp_path):
        settings = Settings(node_env="test", log_level="error", log_dir=str(tmp_path / "logs"))

        setup_logging(settings)

        levels = sorted(h.level for h in self.managed_handlers())
        assert levels == [logging.DEBUG, logging.ERROR]
