# src/tasktracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (loading the snapshot), then starts adapters:
- HTTP adapter in a background thread (optional),
- console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import TYPE_CHECKING

from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import level_from_name, setup_logging
from ..tasks.errors import SnapshotError
from .bootstrap import create_initial_state, save_state

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..api.app import HttpBackgroundRunner


def _shutdown(state) -> None:
    """Best-effort final save (logged, never raised)."""
    try:
        save_state(state)
    except SnapshotError:
        logger.exception("Failed to save snapshot on shutdown.")


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(
        log_dir=settings.data_dir,
        console_level=level_from_name(settings.log_level),
    )
    logger.info("Starting %s (log file: %s)", settings.app_name, log_file)

    state = create_initial_state(settings=settings)

    http_runner: HttpBackgroundRunner | None = None
    if settings.http_enabled:
        from ..api.app import start_http_in_background

        http_runner = start_http_in_background(state)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        elif http_runner is not None:
            # Console REPL keeps the default Ctrl+C handling; only the HTTP-only mode waits on signals.
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except (ValueError, OSError):
                logger.debug("Signal handlers not installed.", exc_info=True)
            logger.info("Console disabled. Serving HTTP only. Press Ctrl+C to stop.")
            stop_main.wait()
        else:
            logger.warning("Both console and HTTP adapters are disabled; nothing to do.")

    finally:
        if http_runner is not None:
            http_runner.stop()
            http_runner.join(timeout=10.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
