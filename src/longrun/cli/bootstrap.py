# src/longrun/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local data directory exists,
- wires the SQLite store/scheduler into one RunRegistry,
- imports task modules so their functions get registered.
"""

from __future__ import annotations

import importlib
import logging

from ..config import get_settings
from ..core.state import AppState
from ..runs.run_models import ExecScope
from ..runs.run_registry import RunRegistry
from ..scheduling.functions import functions as default_functions
from ..scheduling.trigger_store import SqliteTriggerScheduler
from ..storage.property_store import SqlitePropertyStore

logger = logging.getLogger(__name__)


def create_initial_state(*, settings=None, scope: str | None = None, functions=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). scope overrides
    settings.exec_scope; functions defaults to the module-level registry that
    task modules decorate into.
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)

    exec_scope = ExecScope.parse(scope or settings.exec_scope)
    store = SqlitePropertyStore(settings.db_path, scope=exec_scope)
    scheduler = SqliteTriggerScheduler(settings.db_path)
    registry = RunRegistry(
        store,
        scheduler,
        max_execution_seconds=settings.max_execution_seconds,
        trigger_delay_seconds=settings.trigger_delay_seconds,
    )

    return AppState(
        settings=settings,
        store=store,
        scheduler=scheduler,
        registry=registry,
        functions=functions if functions is not None else default_functions,
    )


def load_task_modules(state: AppState, modules: list[str]) -> list[str]:
    """
    Import each task module and let it register its functions.

    A module either decorates functions into the module-level registry at
    import time, or defines register_tasks(state) to wire callables that need
    the run registry. Returns the loaded module names.
    """
    loaded: list[str] = []
    for name in modules:
        module = importlib.import_module(name)
        hook = getattr(module, "register_tasks", None)
        if callable(hook):
            hook(state)
        loaded.append(name)
        logger.info("Loaded task module %s", name)
    return loaded
