# config.example.py

"""
Documentation-only module (safe to commit).

Settings are read from TASKER_* environment variables, optionally via a local
.env file (gitignored). None of them is required.
"""

ENV_VARS = {
    # App / logging
    "TASKER_APP_NAME": "App display name (default: retro-tasker).",
    "TASKER_LOG_LEVEL": "Console logging level (default: INFO). The log file is always DEBUG.",
    # Paths (gitignored)
    "TASKER_DATA_DIR": "Local data directory (default: .local/retro_tasker).",
    "TASKER_DB_PATH": "SQLite blob database (default: <data_dir>/organizer.sqlite3).",
    # Storage layout
    "TASKER_CATEGORIES_KEY": "Blob key of the categories array (default: retroTaskerCategories).",
    "TASKER_TASKS_KEY": "Blob key of the tasks array (default: retroTaskerTasks).",
    # First start
    "TASKER_SEED_DEFAULTS": (
        "Seed Work / Personal / Ideas when no categories blob exists (default: true)."
    ),
}
