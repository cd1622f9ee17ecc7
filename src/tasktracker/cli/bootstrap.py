# src/tasktracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- builds the history tracker, prioritized index and store explicitly,
- loads / saves the CSV snapshot.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.state import AppState
from ..tasks.history import HistoryTracker
from ..tasks.prioritized import PrioritizedIndex
from ..tasks.snapshot_file import FileBackedTaskStore, load_snapshot, save_snapshot
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    limit = int(getattr(settings, "history_limit", 0) or 0)
    history = HistoryTracker(limit=limit or None)
    index = PrioritizedIndex()
    path = Path(settings.snapshot_path)

    store: TaskStore
    if getattr(settings, "autosave", True):
        store = FileBackedTaskStore.load(path, history=history, index=index)
    else:
        store = TaskStore(history=history, index=index)
        snap = load_snapshot(path)
        if not snap.is_empty():
            store.load_snapshot(snap)

    logger.info(
        "Store ready path=%s items=%d autosave=%s history_limit=%s",
        path,
        store.count(),
        getattr(settings, "autosave", True),
        history.limit,
    )
    return AppState(settings=settings, store=store)


def save_state(state: AppState) -> None:
    path = Path(getattr(state.settings, "snapshot_path"))
    with state.lock:
        save_snapshot(state.store, path)  # type: ignore[arg-type]
    logger.info("Saved snapshot: %d items to %s", state.store.count(), path)
