# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasktracker.core.state import AppState
from tasktracker.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the adapters.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasktracker-test",
        log_level="DEBUG",
        history_limit=0,
        autosave=True,
        console_enabled=False,
        http_enabled=False,
        http_host="localhost",
        http_port=0,
        data_dir=tmp_path,
        snapshot_path=tmp_path / "tasks.csv",
    )


@pytest.fixture()
def store() -> TaskStore:
    return TaskStore()


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired with a plain in-memory store.

    NOTE: adapters only rely on the TaskRepo port, so the file-backed store is
    covered separately in test_snapshot_file.py.
    """
    return AppState(settings=settings, store=TaskStore())
