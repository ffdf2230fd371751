"""Tests for structured logging configuration."""

import json
import logging
import logging.handlers
import pathlib

import pytest
import structlog

import span_linker.telemetry.logger as logger_module
from span_linker.telemetry import RUN_CREATE_FAILED
from span_linker.telemetry.logger import configure_logging, get_logger


@pytest.fixture
def json_log_dir(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> pathlib.Path:
    """Route JSON logs to a temporary directory and reconfigure logging."""
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(logger_module, "_get_log_dir", lambda: log_dir)
    monkeypatch.setattr(logger_module, "_get_log_level", lambda: "DEBUG")
    structlog.reset_defaults()
    logging.root.handlers.clear()
    configure_logging()
    return log_dir


def last_entry(log_dir: pathlib.Path) -> dict:
    with open(log_dir / "current.jsonl", encoding="utf-8") as f:
        lines = f.readlines()
    assert lines
    return json.loads(lines[-1])


class TestLoggerConfiguration:
    """Test logger configuration and setup."""

    def test_get_logger_returns_bound_logger(self) -> None:
        """Test that get_logger returns a logger that can be used."""
        log = get_logger(__name__)
        assert hasattr(log, "info")
        assert hasattr(log, "warning")
        assert hasattr(log, "error")

    def test_get_logger_configures_on_first_call(self) -> None:
        """Test that get_logger configures logging on first call."""
        structlog.reset_defaults()

        get_logger("test.module1")
        assert structlog.is_configured()

    def test_no_file_handler_without_log_dir(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that only the console handler is installed when no log dir is set."""
        monkeypatch.setattr(logger_module, "_get_log_dir", lambda: None)
        structlog.reset_defaults()

        configure_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert not isinstance(handlers[0], logging.handlers.RotatingFileHandler)

    def test_logger_emits_structured_json(self, json_log_dir: pathlib.Path) -> None:
        """Test that events and their fields reach the JSON file."""
        log = get_logger("span_linker.tracing.controller")
        log.warning(RUN_CREATE_FAILED, run_id="run-1", trace_id="trace-1", error="down")

        entry = last_entry(json_log_dir)
        assert entry["event"] == "run_create_failed"
        assert entry["run_id"] == "run-1"
        assert entry["trace_id"] == "trace-1"
        assert entry["level"] == "warning"
        assert entry["component"] == "controller"
        assert "timestamp" in entry

    def test_exception_info_is_rendered(self, json_log_dir: pathlib.Path) -> None:
        """Test that exc_info produces a stack trace in the entry."""
        log = get_logger("span_linker.tracing.streaming")
        try:
            raise RuntimeError("aggregation exploded")
        except RuntimeError:
            log.error("stream_task_crashed", exc_info=True)

        entry = last_entry(json_log_dir)
        assert "Traceback" in entry["exception"]
        assert "aggregation exploded" in entry["exception"]

    def test_logger_creates_log_directory(self, json_log_dir: pathlib.Path) -> None:
        """Test that configure_logging creates the log directory."""
        assert json_log_dir.exists()
