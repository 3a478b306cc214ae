# src/longrun/runs/run_codec.py

"""
Flat property layout of a TaskRun.

Every field lives under its own key: a fixed prefix followed by the task
name. The layout is shared with state written by earlier deployments, so the
prefixes (including the separator-less `option_is_addon`) must not change.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..core.ports import PropertyStore
from .run_models import (
    RECURRENCE_PRECEDENCE,
    ExecScope,
    Recurrence,
    RecurrenceUnit,
    SetupOptions,
    TaskRun,
)

logger = logging.getLogger(__name__)

PREFIX_RUNNING = "running_"
PREFIX_TRIGGER = "trigger_"
PREFIX_EXEC_SCOPE = "option_exec_scope_"
PREFIX_TASK_COUNT = "option_task_count_"
PREFIX_MAX_RUNTIME = "option_max_runtime_"
PREFIX_EVERY_N = "option_trigger_every_n_"
PREFIX_IS_ADDON = "option_is_addon"
PREFIX_ARGS = "args_"
PREFIX_COMPLETED_INDEX = "task_completed_index_"

RUNNING_VALUE = "running"


def running_key(task_name: str) -> str:
    return PREFIX_RUNNING + task_name


def trigger_key(task_name: str) -> str:
    return PREFIX_TRIGGER + task_name


def exec_scope_key(task_name: str) -> str:
    return PREFIX_EXEC_SCOPE + task_name


def task_count_key(task_name: str) -> str:
    return PREFIX_TASK_COUNT + task_name


def max_runtime_key(task_name: str) -> str:
    return PREFIX_MAX_RUNTIME + task_name


def every_n_key(unit: RecurrenceUnit, task_name: str) -> str:
    return f"{PREFIX_EVERY_N}{unit.value}_{task_name}"


def is_addon_key(task_name: str) -> str:
    return PREFIX_IS_ADDON + task_name


def args_key(task_name: str) -> str:
    return PREFIX_ARGS + task_name


def completed_index_key(task_name: str) -> str:
    return PREFIX_COMPLETED_INDEX + task_name


def option_keys(task_name: str) -> list[str]:
    keys = [
        exec_scope_key(task_name),
        task_count_key(task_name),
        max_runtime_key(task_name),
        is_addon_key(task_name),
    ]
    keys.extend(every_n_key(unit, task_name) for unit in RECURRENCE_PRECEDENCE)
    return keys


def all_keys(task_name: str) -> list[str]:
    """Every key a TaskRun may occupy."""
    return [
        running_key(task_name),
        trigger_key(task_name),
        *option_keys(task_name),
        args_key(task_name),
        completed_index_key(task_name),
    ]


# ---- scalar encoding ----

def encode_bool(value: bool) -> str:
    return "true" if value else "false"


def parse_bool(raw: str | None) -> bool:
    return (raw or "").strip().lower() == "true"


def parse_int(raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer property value %r", raw)
        return None


def encode_args(args: list[Any] | tuple[Any, ...] | None) -> str:
    """JSON-encode function arguments. Raises TypeError/ValueError if not serializable."""
    if isinstance(args, (str, bytes, bytearray)):
        raise TypeError(f"args must be a list or tuple, got {type(args).__name__}")
    return json.dumps(list(args or []), ensure_ascii=False)


def decode_args(raw: str | None) -> list[Any]:
    if not raw:
        return []
    try:
        val = json.loads(raw)
    except ValueError:
        logger.warning("Stored args are not valid JSON; treating as empty")
        return []
    return val if isinstance(val, list) else [val]


# ---- record encoding ----

def encode_setup(
    task_name: str,
    options: SetupOptions,
    *,
    trigger_handle: str,
    args_raw: str,
) -> dict[str, str]:
    """Property batch written by setup (running is implicitly absent)."""
    values = {
        trigger_key(task_name): trigger_handle,
        exec_scope_key(task_name): options.exec_scope.value,
        task_count_key(task_name): str(options.task_count),
        max_runtime_key(task_name): str(options.max_runtime_seconds),
        is_addon_key(task_name): encode_bool(options.is_addon),
        args_key(task_name): args_raw,
    }
    rec = options.effective_recurrence()
    if rec is not None:
        values[every_n_key(rec.unit, task_name)] = str(rec.every)
    return values


def load_setup_options(store: PropertyStore, task_name: str) -> SetupOptions | None:
    task_count = parse_int(store.get(task_count_key(task_name)))
    if task_count is None:
        return None

    is_addon = parse_bool(store.get(is_addon_key(task_name)))
    every = {unit: parse_int(store.get(every_n_key(unit, task_name))) for unit in RECURRENCE_PRECEDENCE}
    try:
        recurrence = Recurrence.from_fields(
            minutes=every[RecurrenceUnit.MINUTES],
            hours=every[RecurrenceUnit.HOURS],
            days=every[RecurrenceUnit.DAYS],
            weeks=every[RecurrenceUnit.WEEKS],
            is_addon=is_addon,
        )
        return SetupOptions(
            task_count=task_count,
            recurrence=recurrence,
            max_runtime_seconds=parse_int(store.get(max_runtime_key(task_name))) or 240,
            exec_scope=ExecScope.parse(store.get(exec_scope_key(task_name))),
            is_addon=is_addon,
        )
    except ValueError:
        logger.warning("Stored setup options for %s are invalid; ignoring", task_name)
        return None


def load_task_run(store: PropertyStore, task_name: str) -> TaskRun:
    raw_args = store.get(args_key(task_name))
    return TaskRun(
        task_name=task_name,
        running=bool(store.get(running_key(task_name))),
        trigger_handle=store.get(trigger_key(task_name)) or None,
        setup_options=load_setup_options(store, task_name),
        func_args=decode_args(raw_args) if raw_args is not None else None,
        completed_index=parse_int(store.get(completed_index_key(task_name))),
    )
