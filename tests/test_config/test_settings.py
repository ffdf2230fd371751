"""Tests for configuration settings."""

import logging
import logging.handlers
import os
from pathlib import Path

import pytest
import structlog
from pydantic import ValidationError

import span_linker.config.settings as settings_module
from span_linker.config import (
    AppConfig,
    Environment,
    get_environment,
    get_settings,
    load_app_config,
    load_env_files,
    reset_settings,
)
from span_linker.config.bootstrap import (
    get_bootstrap_log_dir,
    get_bootstrap_log_format,
    get_bootstrap_log_level,
)
from span_linker.telemetry.logger import configure_logging


class TestEnvironmentDetection:
    """Test environment detection."""

    def test_get_environment_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default environment is development."""
        monkeypatch.delenv("APP_ENV", raising=False)
        assert get_environment() == Environment.DEVELOPMENT

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("production", Environment.PRODUCTION),
            ("prod", Environment.PRODUCTION),
            ("staging", Environment.STAGING),
            ("stage", Environment.STAGING),
            ("test", Environment.TEST),
        ],
    )
    def test_get_environment_values(
        self, monkeypatch: pytest.MonkeyPatch, value: str, expected: Environment
    ) -> None:
        """Test environment names and aliases."""
        monkeypatch.setenv("APP_ENV", value)
        assert get_environment() == expected


class TestAppConfig:
    """Test AppConfig class."""

    def test_app_config_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test AppConfig code defaults."""
        for name in ("APP_LOG_LEVEL", "APP_LOG_FORMAT", "SPAN_LINKER_LOG_DIR"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv("SPAN_LINKER_TRACING_ENABLED", raising=False)
        monkeypatch.delenv("SPAN_LINKER_DEFAULT_SESSION_NAME", raising=False)

        config = AppConfig()

        assert config.log_level == "INFO"
        assert config.log_format == "console"
        assert config.log_dir is None
        assert config.tracing_enabled is True
        assert config.default_session_name == "default"

    def test_app_config_from_env_vars(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Test AppConfig reads SPAN_LINKER_ prefixed variables and aliases."""
        monkeypatch.setenv("SPAN_LINKER_TRACING_ENABLED", "false")
        monkeypatch.setenv("SPAN_LINKER_DEFAULT_SESSION_NAME", "nightly-eval")
        monkeypatch.setenv("SPAN_LINKER_LOG_DIR", str(tmp_path / "logs"))
        monkeypatch.setenv("APP_LOG_LEVEL", "debug")

        config = AppConfig()

        assert config.tracing_enabled is False
        assert config.default_session_name == "nightly-eval"
        assert config.log_dir == (tmp_path / "logs").resolve()
        assert config.log_level == "DEBUG"

    def test_empty_log_dir_disables_file_logging(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an empty log dir is treated as unset."""
        monkeypatch.setenv("SPAN_LINKER_LOG_DIR", "")
        assert AppConfig().log_dir is None

    def test_log_level_validation(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test log level validation."""
        monkeypatch.setenv("APP_LOG_LEVEL", "INVALID")
        with pytest.raises(ValidationError):
            AppConfig()

    def test_log_format_validation(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test log format validation."""
        monkeypatch.setenv("APP_LOG_FORMAT", "invalid")
        with pytest.raises(ValidationError):
            AppConfig()


class TestBootstrap:
    """Test pre-settings helpers used by logging."""

    def test_bootstrap_log_level_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an invalid level falls back to the default."""
        monkeypatch.setenv("APP_LOG_LEVEL", "loud")
        assert get_bootstrap_log_level() == "INFO"

    def test_bootstrap_log_dir(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test reading the log directory from the environment."""
        monkeypatch.delenv("SPAN_LINKER_LOG_DIR", raising=False)
        assert get_bootstrap_log_dir() is None

        monkeypatch.setenv("SPAN_LINKER_LOG_DIR", str(tmp_path))
        assert get_bootstrap_log_dir() == tmp_path.resolve()

    def test_bootstrap_log_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test reading the console log format, falling back on bad values."""
        monkeypatch.setenv("APP_LOG_FORMAT", "JSON")
        assert get_bootstrap_log_format() == "json"

        monkeypatch.setenv("APP_LOG_FORMAT", "yaml")
        assert get_bootstrap_log_format() == "console"


class TestSingleton:
    """Test singleton pattern."""

    def test_get_settings_returns_singleton(self) -> None:
        """Test that get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_reset_settings(self) -> None:
        """Test that reset_settings forces a reload."""
        first = get_settings()
        reset_settings()
        try:
            assert get_settings() is not first
        finally:
            settings_module._settings = first


class TestEnvFileLoading:
    """Test .env file loading."""

    def test_load_env_files_priority(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test .env file loading priority order."""
        (tmp_path / ".env").write_text("SPAN_LINKER_TEST_VAR=base\nSPAN_LINKER_BASE_ONLY=1\n")
        (tmp_path / ".env.local").write_text("SPAN_LINKER_TEST_VAR=local\n")
        (tmp_path / ".env.development").write_text("SPAN_LINKER_TEST_VAR=development\n")
        (tmp_path / ".env.development.local").write_text(
            "SPAN_LINKER_TEST_VAR=development_local\n"
        )
        monkeypatch.setenv("APP_ENV", "development")
        monkeypatch.delenv("SPAN_LINKER_TEST_VAR", raising=False)
        monkeypatch.delenv("SPAN_LINKER_BASE_ONLY", raising=False)

        try:
            loaded = load_env_files(tmp_path)

            assert os.getenv("SPAN_LINKER_TEST_VAR") == "development_local"
            assert os.getenv("SPAN_LINKER_BASE_ONLY") == "1"
            assert len(loaded) == 4
        finally:
            os.environ.pop("SPAN_LINKER_TEST_VAR", None)
            os.environ.pop("SPAN_LINKER_BASE_ONLY", None)

    def test_explicit_env_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that variables already set are not overridden by .env files."""
        (tmp_path / ".env").write_text("SPAN_LINKER_TEST_VAR=from_file\n")
        monkeypatch.setenv("SPAN_LINKER_TEST_VAR", "explicit")

        load_env_files(tmp_path)

        assert os.getenv("SPAN_LINKER_TEST_VAR") == "explicit"


class TestLoadAppConfig:
    """Test load_app_config function."""

    def test_load_app_config_creates_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that load_app_config creates a valid config."""
        monkeypatch.chdir(tmp_path)
        config = load_app_config()
        assert isinstance(config, AppConfig)
        assert config.log_level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    def test_load_app_config_applies_logging_settings(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that log settings read from a .env file reconfigure logging."""
        log_dir = tmp_path / "logs"
        (tmp_path / ".env").write_text(
            f"SPAN_LINKER_LOG_DIR={log_dir}\nAPP_LOG_LEVEL=WARNING\nAPP_LOG_FORMAT=json\n"
        )
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("APP_ENV", "development")
        # setenv then delenv so monkeypatch restores the variables .env will set
        for name in ("SPAN_LINKER_LOG_DIR", "APP_LOG_LEVEL", "APP_LOG_FORMAT"):
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)

        try:
            config = load_app_config()

            assert config.log_dir == log_dir.resolve()
            handlers = logging.getLogger().handlers
            file_handlers = [
                h for h in handlers if isinstance(h, logging.handlers.RotatingFileHandler)
            ]
            assert len(file_handlers) == 1
            assert Path(file_handlers[0].baseFilename).parent == log_dir.resolve()

            console = [h for h in handlers if h not in file_handlers]
            assert console[0].level == logging.WARNING
            formatter = console[0].formatter
            assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
            assert isinstance(formatter.processors[-1], structlog.processors.JSONRenderer)
        finally:
            for handler in logging.getLogger().handlers:
                handler.close()
            configure_logging()
