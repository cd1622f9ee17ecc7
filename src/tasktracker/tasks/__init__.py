"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Epic, Subtask, TaskStatus, TaskKind)
- history.py: recency-ordered view history with O(1) removal
- prioritized.py: start-time ordered index of scheduled items + overlap guard
- task_store.py: in-memory orchestrator that keeps all of the above consistent
- snapshot_file.py: CSV snapshot persistence + autosaving store
"""
