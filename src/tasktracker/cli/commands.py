# src/tasktracker/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import cast

from ..core.state import AppState
from ..tasks.errors import SchedulingConflictError, TaskReferenceError, TaskTrackerError
from ..tasks.task_models import AnyTask, Epic, Subtask, Task, TaskKind, TaskStatus
from .bootstrap import save_state

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_KIND_ALIASES = {
    "task": TaskKind.TASK,
    "tasks": TaskKind.TASK,
    "epic": TaskKind.EPIC,
    "epics": TaskKind.EPIC,
    "sub": TaskKind.SUBTASK,
    "subtask": TaskKind.SUBTASK,
    "subtasks": TaskKind.SUBTASK,
}


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            with state.lock:
                if nparams >= 3:
                    h3 = cast(CommandHandler3, handler)
                    return h3(state, args, emit)
                h2 = cast(CommandHandler2, handler)
                return h2(state, args)
        except SchedulingConflictError as e:
            return f"Rejected, schedule conflict: {e}"
        except TaskReferenceError as e:
            return f"Rejected, {e}"
        except TaskTrackerError as e:
            logger.warning("Command /%s failed: %s", name, e)
            return f"Failed: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing / formatting helpers ----


def _split_opts(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate positional args from `--key value` options."""
    positional: list[str] = []
    opts: dict[str, str] = {}
    it = iter(args)
    for a in it:
        if a.startswith("--") and len(a) > 2:
            opts[a[2:].lower()] = next(it, "")
        else:
            positional.append(a)
    return positional, opts


def _parse_schedule(opts: dict[str, str]) -> tuple[datetime | None, timedelta]:
    start = datetime.fromisoformat(opts["start"]) if opts.get("start") else None
    if start is not None and start.tzinfo is not None:
        raise ValueError("start must be a local time without a UTC offset")
    minutes = int(opts.get("minutes") or 0)
    if minutes < 0:
        raise ValueError("minutes must be non-negative")
    return start, timedelta(minutes=minutes)


def _fmt_time(dt: datetime | None) -> str:
    return dt.strftime("%Y-%m-%d %H:%M") if dt else "-"


def format_item(item: AnyTask) -> str:
    minutes = int(item.duration.total_seconds() // 60)
    line = f"#{item.id} [{item.kind.value}] {item.status.value} {item.name}"
    if item.start_time is not None:
        line += f" ({_fmt_time(item.start_time)} .. {_fmt_time(item.end_time)}, {minutes}m)"
    elif minutes:
        line += f" (unscheduled, {minutes}m)"
    if isinstance(item, Subtask):
        line += f" epic=#{item.epic_id}"
    elif isinstance(item, Epic) and item.subtask_ids:
        line += f" subtasks={list(item.subtask_ids)}"
    return line


def _format_list(title: str, items: list[AnyTask]) -> str:
    if not items:
        return f"{title}: (empty)"
    return "\n".join([f"{title}:"] + [f"  {format_item(i)}" for i in items])


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        return None


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    store = state.store
    return (
        "Status:\n"
        f"  Items: {store.count()} (tasks={len(store.list_all(TaskKind.TASK))}, "
        f"epics={len(store.list_all(TaskKind.EPIC))}, "
        f"subtasks={len(store.list_all(TaskKind.SUBTASK))})\n"
        f"  History entries: {len(store.history_snapshot())}\n"
        f"  Snapshot: {getattr(s, 'snapshot_path', '-')} "
        f"(autosave {'ON' if getattr(s, 'autosave', False) else 'OFF'})"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list              -> everything
    /list tasks|epics|subtasks
    /list epic <id>    -> subtasks of one epic
    """
    if not args:
        return "\n".join(
            _format_list(kind.value.title() + "s", state.store.list_all(kind)) for kind in TaskKind
        )

    kind = _KIND_ALIASES.get(args[0].lower())
    if kind is None:
        return "Usage: /list [tasks|epics|subtasks] | /list epic <id>"

    if kind is TaskKind.EPIC and len(args) > 1:
        epic_id = _parse_id(args[1])
        if epic_id is None or not state.store.has_epic(epic_id):
            return f"Epic {args[1]} not found."
        return _format_list(f"Subtasks of epic #{epic_id}", list(state.store.list_subtasks_of_epic(epic_id)))

    return _format_list(kind.value.title() + "s", state.store.list_all(kind))


def cmd_get(state: AppState, args: list[str]) -> str:
    item_id = _parse_id(args[0]) if args else None
    if item_id is None:
        return "Usage: /get <id>"
    item = state.store.get_by_id(item_id)
    if item is None:
        return f"Item #{item_id} not found."
    text = format_item(item)
    if item.description:
        text += f"\n  {item.description}"
    return text


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add task <name> [--desc TEXT] [--start ISO] [--minutes N]
    /add epic <name> [--desc TEXT]
    /add sub <epic_id> <name> [--desc TEXT] [--start ISO] [--minutes N]
    """
    usage = (
        "Usage:\n"
        "  /add task <name> [--desc TEXT] [--start ISO] [--minutes N]\n"
        "  /add epic <name> [--desc TEXT]\n"
        "  /add sub <epic_id> <name> [--desc TEXT] [--start ISO] [--minutes N]"
    )
    positional, opts = _split_opts(args)
    if len(positional) < 2:
        return usage

    kind = _KIND_ALIASES.get(positional[0].lower())
    desc = opts.get("desc", "")
    try:
        start, duration = _parse_schedule(opts)
    except ValueError as e:
        return f"Bad time options: {e}"

    item: AnyTask
    if kind is TaskKind.TASK:
        item = Task(name=" ".join(positional[1:]), description=desc, start_time=start, duration=duration)
    elif kind is TaskKind.EPIC:
        item = Epic(name=" ".join(positional[1:]), description=desc)
    elif kind is TaskKind.SUBTASK and len(positional) >= 3:
        epic_id = _parse_id(positional[1])
        if epic_id is None:
            return usage
        item = Subtask(
            name=" ".join(positional[2:]),
            description=desc,
            start_time=start,
            duration=duration,
            epic_id=epic_id,
        )
    else:
        return usage

    stored = state.store.create(item)
    return f"Created {format_item(stored)}"


def cmd_set(state: AppState, args: list[str]) -> str:
    """
    /set <id> status NEW|IN_PROGRESS|DONE
    /set <id> name <text>
    /set <id> start <ISO>|none
    /set <id> minutes <N>
    /set <id> epic <epic_id>     (subtasks only)
    """
    usage = "Usage: /set <id> status|name|start|minutes|epic <value>"
    if len(args) < 3:
        return usage
    item_id = _parse_id(args[0])
    if item_id is None:
        return usage
    item = state.store.peek(item_id)
    if item is None:
        return f"Item #{item_id} not found."

    field_name = args[1].lower()
    value = " ".join(args[2:])
    try:
        if field_name == "status":
            if isinstance(item, Epic):
                return "Epic status is derived from its subtasks."
            updated: AnyTask = replace(item, status=TaskStatus.parse(value))
        elif field_name == "name":
            updated = replace(item, name=value)
        elif field_name in ("start", "minutes", "epic") and isinstance(item, Epic):
            return "Epic time and links are derived from its subtasks."
        elif field_name == "start":
            start = None if value.lower() == "none" else datetime.fromisoformat(value)
            updated = replace(item, start_time=start)
        elif field_name == "minutes":
            updated = replace(item, duration=timedelta(minutes=int(value)))
        elif field_name == "epic" and isinstance(item, Subtask):
            epic_id = _parse_id(value)
            if epic_id is None:
                return usage
            updated = replace(item, epic_id=epic_id)
        else:
            return usage
    except ValueError as e:
        return f"Bad value: {e}"

    if not state.store.update(updated):
        return f"Update of #{item_id} was not applied."
    current = state.store.peek(item_id)
    return f"Updated {format_item(current) if current else f'#{item_id}'}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    item_id = _parse_id(args[0]) if args else None
    if item_id is None:
        return "Usage: /rm <id>"
    if state.store.delete_by_id(item_id):
        return f"Deleted #{item_id}."
    return f"Nothing to delete for #{item_id}."


def cmd_clear(state: AppState, args: list[str]) -> str:
    kind = _KIND_ALIASES.get(args[0].lower()) if args else None
    if kind is None:
        return "Usage: /clear tasks|epics|subtasks"
    state.store.delete_all(kind)
    return f"Cleared all {kind.value.lower()}s."


def cmd_history(state: AppState, args: list[str]) -> str:
    return _format_list("History (oldest first)", state.store.history_snapshot())


def cmd_prioritized(state: AppState, args: list[str]) -> str:
    return _format_list("Scheduled (by start time)", state.store.prioritized_snapshot())


def cmd_save(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[STORE] Saving snapshot...")
    save_state(state)
    return f"Saved {state.store.count()} items."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show store totals and snapshot settings.")
registry.register("list", cmd_list, help_text="List items: /list [tasks|epics|subtasks] | /list epic <id>.", aliases=["ls"])
registry.register("get", cmd_get, help_text="Show one item (recorded in history): /get <id>.")
registry.register("add", cmd_add, help_text="Create: /add task|epic|sub ... (see /add).")
registry.register("set", cmd_set, help_text="Update: /set <id> status|name|start|minutes|epic <value>.")
registry.register("rm", cmd_rm, help_text="Delete by id (epics cascade): /rm <id>.", aliases=["del"])
registry.register("clear", cmd_clear, help_text="Delete all of a kind: /clear tasks|epics|subtasks.")
registry.register("history", cmd_history, help_text="Show view history.")
registry.register("prioritized", cmd_prioritized, help_text="Show scheduled items by start time.", aliases=["plan"])
registry.register("save", cmd_save, help_text="Write the snapshot file now.")
