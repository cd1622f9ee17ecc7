# src/tasktracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Everything has a safe default; nothing is required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKTRACKER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env (gitignored) never overrides the real environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Store ----
    # 0 => unbounded history; N > 0 => keep only the N most recent views.
    history_limit: int
    autosave: bool

    # ---- Connector flags ----
    console_enabled: bool
    http_enabled: bool
    http_host: str
    http_port: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    snapshot_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tasktracker") or "tasktracker"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        history_limit = max(0, _env_int(_k("HISTORY_LIMIT"), 0))
        autosave = _env_bool(_k("AUTOSAVE"), True)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        http_enabled = _env_bool(_k("HTTP_ENABLED"), False)
        http_host = _env(_k("HTTP_HOST"), "localhost").strip() or "localhost"
        http_port = _env_int(_k("HTTP_PORT"), 8080)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasktracker"))
        snapshot_path = _env_path(_k("SNAPSHOT_PATH"), data_dir / "tasks.csv")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            history_limit=history_limit,
            autosave=autosave,
            console_enabled=console_enabled,
            http_enabled=http_enabled,
            http_host=http_host,
            http_port=http_port,
            data_dir=data_dir,
            snapshot_path=snapshot_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
