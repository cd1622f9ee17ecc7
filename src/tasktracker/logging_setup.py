# src/tasktracker/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Console thresholds by logger-name prefix; the longest matching prefix wins.
_CONSOLE_THRESHOLDS: dict[str, int] = {
    "tasktracker": logging.NOTSET,
    # HTTP adapter runs in a background thread and would interleave with the REPL.
    "tasktracker.api": logging.WARNING,
    "werkzeug": logging.WARNING,
    "py.warnings": logging.ERROR,
}
_THIRD_PARTY_THRESHOLD = logging.ERROR


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """Map 'debug' / 'WARNING' / '10' to a logging level, falling back to `default`."""
    if not name:
        return default
    raw = str(name).strip().upper()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable: tracker logs pass through,
    the HTTP adapter and werkzeug only from WARNING, everything else only from ERROR.
    The file handler is not filtered.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        best = ""
        for prefix in _CONSOLE_THRESHOLDS:
            if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > len(best):
                best = prefix
        threshold = _CONSOLE_THRESHOLDS[best] if best else _THIRD_PARTY_THRESHOLD
        return record.levelno >= threshold


def setup_logging(
    *,
    log_dir: str | Path = ".local/tasktracker",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install a filtered stderr handler and a full file handler on the root logger.

    Call once, before the first log line. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tasktracker.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    logfile = logging.FileHandler(str(log_file), encoding="utf-8")
    logfile.setLevel(file_level)
    logfile.setFormatter(fmt)
    root.addHandler(logfile)

    logging.captureWarnings(True)
    return log_file
