"""In-process task tracker: tasks, epics with derived state, view history, schedule guard."""

__version__ = "0.1.0"
