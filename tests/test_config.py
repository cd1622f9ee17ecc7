# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path

from tasktracker.config import Settings
from tasktracker.logging_setup import _ConsoleNoiseFilter, level_from_name


def _clear_env(monkeypatch) -> None:
    for suffix in (
        "APP_NAME",
        "LOG_LEVEL",
        "HISTORY_LIMIT",
        "AUTOSAVE",
        "CONSOLE_ENABLED",
        "HTTP_ENABLED",
        "HTTP_HOST",
        "HTTP_PORT",
        "DATA_DIR",
        "SNAPSHOT_PATH",
    ):
        monkeypatch.delenv(f"TASKTRACKER_{suffix}", raising=False)


def test_defaults(monkeypatch) -> None:
    _clear_env(monkeypatch)
    s = Settings.from_env()
    assert s.app_name == "tasktracker"
    assert s.history_limit == 0
    assert s.autosave is True
    assert s.console_enabled is True
    assert s.http_enabled is False
    assert s.http_port == 8080
    assert s.snapshot_path == Path(".local/tasktracker") / "tasks.csv"


def test_env_overrides(monkeypatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("TASKTRACKER_HISTORY_LIMIT", "10")
    monkeypatch.setenv("TASKTRACKER_AUTOSAVE", "off")
    monkeypatch.setenv("TASKTRACKER_HTTP_ENABLED", "yes")
    monkeypatch.setenv("TASKTRACKER_HTTP_PORT", "9090")
    monkeypatch.setenv("TASKTRACKER_DATA_DIR", str(tmp_path))

    s = Settings.from_env()
    assert s.history_limit == 10
    assert s.autosave is False
    assert s.http_enabled is True
    assert s.http_port == 9090
    # snapshot follows the data dir unless set explicitly
    assert s.snapshot_path == tmp_path / "tasks.csv"


def test_malformed_numbers_fall_back(monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("TASKTRACKER_HTTP_PORT", "eighty")
    monkeypatch.setenv("TASKTRACKER_HISTORY_LIMIT", "-4")
    s = Settings.from_env()
    assert s.http_port == 8080
    assert s.history_limit == 0


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_noise_filter() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("tasktracker.tasks.task_store", logging.DEBUG))
    assert not f.filter(_record("tasktracker.api.app", logging.INFO))
    assert f.filter(_record("tasktracker.api.app", logging.WARNING))
    assert not f.filter(_record("werkzeug", logging.INFO))
    assert not f.filter(_record("urllib3", logging.WARNING))
    assert f.filter(_record("urllib3", logging.ERROR))


def test_level_from_name() -> None:
    assert level_from_name("debug") == logging.DEBUG
    assert level_from_name(" Warning ") == logging.WARNING
    assert level_from_name("15") == 15
    assert level_from_name("chatty") == logging.INFO
    assert level_from_name(None, default=logging.ERROR) == logging.ERROR
