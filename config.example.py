# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "LONGRUN_APP_NAME": "Worker display name (default: longrun).",
    "LONGRUN_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "LONGRUN_DATA_DIR": "Local data directory, also holds longrun.log (default: .local/longrun).",
    "LONGRUN_DB_PATH": "SQLite file for properties and triggers (default: <data_dir>/longrun.sqlite3).",
    # Run registry
    "LONGRUN_EXEC_SCOPE": "Property scope the worker reads/writes: user, script or document (default: user).",
    "LONGRUN_MAX_EXECUTION_SECONDS": "Per-invocation quota before a task must suspend (default: 240).",
    "LONGRUN_TRIGGER_DELAY_SECONDS": "Delay of the one-shot resume trigger for tasks not set up (default: 60).",
    # Trigger loop
    "LONGRUN_POLL_INTERVAL_SECONDS": "How often the worker looks for due triggers (default: 15).",
    "LONGRUN_BATCH_LIMIT": "Max triggers fired per poll (default: 32).",
    "LONGRUN_TASK_MODULES": "Comma/space separated modules to import at worker start.",
}
