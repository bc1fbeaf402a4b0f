"""
Unit tests for logging configuration.
"""

import json
import logging

import pytest

from backend.src.utils.logging_config import (
    ConsoleFormatter,
    JSONFormatter,
    get_logger,
    options_from_env,
)


def _record(**extra):
    record = logging.LogRecord(
        "gigboard.auth", logging.WARNING, __file__, 10, "Repeated invalid credentials",
        (), None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_extra_fields():
    data = json.loads(JSONFormatter().format(_record(client_ip="10.0.0.4", failure_count=5)))
    assert data["level"] == "WARNING"
    assert data["logger"] == "gigboard.auth"
    assert data["message"] == "Repeated invalid credentials"
    assert data["client_ip"] == "10.0.0.4"
    assert data["failure_count"] == 5


def test_console_formatter_appends_extras():
    line = ConsoleFormatter().format(_record(client_ip="10.0.0.4"))
    assert "gigboard.auth - Repeated invalid credentials client_ip=10.0.0.4" in line


def test_test_environment_is_quiet(monkeypatch):
    monkeypatch.setenv("GIGBOARD_ENV", "test")
    monkeypatch.delenv("GIGBOARD_LOG_LEVEL", raising=False)
    options = options_from_env()
    assert options.level == logging.WARNING
    assert options.json_files is False


def test_production_writes_json_files(monkeypatch, tmp_path):
    monkeypatch.setenv("GIGBOARD_ENV", "production")
    monkeypatch.setenv("GIGBOARD_LOG_LEVEL", "debug")
    monkeypatch.setenv("GIGBOARD_LOG_DIR", str(tmp_path / "logs"))
    options = options_from_env()
    assert options.level == logging.DEBUG
    assert options.json_files is True
    assert options.log_dir.is_dir()


def test_unknown_logger_name():
    assert get_logger("services").name == "gigboard.services"
    with pytest.raises(ValueError):
        get_logger("photos")
