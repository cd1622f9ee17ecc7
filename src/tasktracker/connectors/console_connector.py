# src/tasktracker/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

PROMPT = "tasks> "
EXIT_WORDS = ("/exit", "/quit")
NOT_A_COMMAND = "Commands start with '/'. Use /help to list available commands."


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str, *, flush: bool = False) -> None:
    print(f"[{_ts_local()}] {text}", flush=flush)


def _dispatch(state: AppState, line: str) -> str:
    try:
        reply = command_registry.handle(state, line, emit=lambda text: _print_ts(text, flush=True))
    except Exception:
        logger.exception("Command handler crashed on %r.", line)
        return "Internal error while handling a command."
    return NOT_A_COMMAND if reply is None else reply


def run_console_loop(state: AppState) -> None:
    """Read slash commands from stdin until /exit, EOF or Ctrl+C."""
    logger.info("Console connector started (items=%d).", state.store.count())
    _print_ts(f"[CONSOLE] {state.store.count()} items loaded. Use /help for commands, /exit to quit.\n")

    while True:
        try:
            line = input(PROMPT).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue
        if line.lower() in EXIT_WORDS:
            logger.info("Console exit command received.")
            break

        _print_ts(_dispatch(state, line))

    logger.info("Console connector finished.")
