# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKTRACKER_APP_NAME": "App display name (default: tasktracker).",
    "TASKTRACKER_LOG_LEVEL": "Console logging level (default: INFO).",
    # Store
    "TASKTRACKER_HISTORY_LIMIT": "Max view-history entries; 0 = unbounded (default: 0).",
    "TASKTRACKER_AUTOSAVE": "Write the snapshot after every change (default: true).",
    # Connectors
    "TASKTRACKER_CONSOLE_ENABLED": "Enable console REPL (default: true).",
    "TASKTRACKER_HTTP_ENABLED": "Enable HTTP adapter (default: false).",
    "TASKTRACKER_HTTP_HOST": "HTTP bind host (default: localhost).",
    "TASKTRACKER_HTTP_PORT": "HTTP port (default: 8080).",
    # Paths (gitignored)
    "TASKTRACKER_DATA_DIR": "Local data directory (default: .local/tasktracker).",
    "TASKTRACKER_SNAPSHOT_PATH": "CSV snapshot path (default: <data_dir>/tasks.csv).",
}
