# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
See .env.example for a ready-to-copy template.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKFEED_APP_NAME": "App display name used in logs (default: taskfeed).",
    "TASKFEED_LOG_LEVEL": "Console logging level (default: INFO).",
    "TASKFEED_LOG_TO_FILE": "Also write full DEBUG logs to <data_dir>/taskfeed.log (true/false).",
    # Storage
    "TASKFEED_STORE_BACKEND": "Task store: sqlite (durable) or memory (default: sqlite).",
    # Paths (gitignored)
    "TASKFEED_DATA_DIR": "Local data directory (default: .local/taskfeed).",
    "TASKFEED_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
}
