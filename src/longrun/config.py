# src/longrun/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole worker process.
- Every value has a default; nothing is required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "LONGRUN"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths ----
    data_dir: Path
    db_path: Path

    # ---- Run registry ----
    exec_scope: str
    max_execution_seconds: int
    trigger_delay_seconds: int

    # ---- Trigger loop ----
    poll_interval_seconds: float
    batch_limit: int
    task_modules: list[str]

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "longrun") or "longrun"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/longrun"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "longrun.sqlite3")

        exec_scope = _env(_k("EXEC_SCOPE"), "user").strip().lower() or "user"
        max_execution_seconds = _env_int(_k("MAX_EXECUTION_SECONDS"), 240)
        trigger_delay_seconds = _env_int(_k("TRIGGER_DELAY_SECONDS"), 60)

        poll_interval_seconds = _env_float(_k("POLL_INTERVAL_SECONDS"), 15.0)
        batch_limit = _env_int(_k("BATCH_LIMIT"), 32)
        task_modules = _env_list(_k("TASK_MODULES"), [])

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            exec_scope=exec_scope,
            max_execution_seconds=max_execution_seconds,
            trigger_delay_seconds=trigger_delay_seconds,
            poll_interval_seconds=poll_interval_seconds,
            batch_limit=batch_limit,
            task_modules=task_modules,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
