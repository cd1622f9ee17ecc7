# src/tasktracker/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .ports import TaskRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: TaskRepo

    # Single-writer store: every adapter call goes through this lock.
    lock: threading.RLock = field(default_factory=threading.RLock)
