# src/longrun/runs/run_registry.py

"""
Run registry: checkpoint/resume protocol for long-running tasks.

A task that would exceed the host's per-invocation time limit is split into
increments 0..task_count-1. Each invocation:

    start = registry.get_start_index(name)
    for i in range(start, task_count):
        if registry.check_should_suspend(name, i):
            return                      # the trigger will call us again
        do_work(i)
        registry.set_task_completed(name, i)
    registry.end(name)                  # tears everything down

Construct one registry per process and pass it to the task body. Start times
are kept in memory only, so they never outlive the invocation that took them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..core.ports import PropertyStore, TriggerScheduler
from ..errors import PersistenceFailure, SchedulerFailure, SetupFailed
from . import run_codec as codec
from .run_models import SetupOptions, TaskRun

logger = logging.getLogger(__name__)

DEFAULT_MAX_EXECUTION_SECONDS = 4 * 60
DEFAULT_TRIGGER_DELAY_SECONDS = 60


@dataclass(slots=True)
class _Invocation:
    started_at: float
    quota_seconds: int
    scheduled: bool


def _require_name(task_name: str) -> str:
    if not task_name or not task_name.strip():
        raise ValueError("task_name is required")
    return task_name


def _require_positive(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


class RunRegistry:
    def __init__(
        self,
        store: PropertyStore,
        scheduler: TriggerScheduler,
        *,
        max_execution_seconds: int = DEFAULT_MAX_EXECUTION_SECONDS,
        trigger_delay_seconds: int = DEFAULT_TRIGGER_DELAY_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._clock = clock
        self._invocations: dict[str, _Invocation] = {}
        self._max_execution_seconds = _require_positive("max_execution_seconds", max_execution_seconds)
        self._trigger_delay_seconds = _require_positive("trigger_delay_seconds", trigger_delay_seconds)

    @property
    def scope(self) -> str:
        return self._store.scope

    @property
    def max_execution_seconds(self) -> int:
        return self._max_execution_seconds

    @property
    def trigger_delay_seconds(self) -> int:
        return self._trigger_delay_seconds

    def set_max_execution_seconds(self, seconds: int) -> None:
        self._max_execution_seconds = _require_positive("max_execution_seconds", seconds)

    def set_trigger_delay_seconds(self, seconds: int) -> None:
        self._trigger_delay_seconds = _require_positive("trigger_delay_seconds", seconds)

    # ---- running flag ----

    def is_running(self, task_name: str) -> bool:
        return bool(self._store.get(codec.running_key(task_name)))

    def set_running(self, task_name: str, running: bool) -> None:
        # "false" is never written: an absent key is the not-running state.
        key = codec.running_key(task_name)
        if running:
            self._store.set(key, codec.RUNNING_VALUE)
        else:
            self._store.delete(key)

    # ---- arguments ----

    def get_args(self, task_name: str) -> list[Any]:
        return codec.decode_args(self._store.get(codec.args_key(task_name)))

    def set_args(self, task_name: str, args: list[Any] | tuple[Any, ...] | None) -> None:
        key = codec.args_key(task_name)
        if args is None:
            self._store.delete(key)
        else:
            self._store.set(key, codec.encode_args(args))

    # ---- lifecycle ----

    def setup(
        self,
        task_name: str,
        options: SetupOptions,
        args: list[Any] | tuple[Any, ...] | None = None,
    ) -> TaskRun:
        """
        (Re-)initialize a task: one recurring trigger plus one batched write.

        Any previous run of the same name is reset first. On failure nothing
        is left behind and SetupFailed is raised.
        """
        _require_name(task_name)
        self.reset(task_name)

        if options.exec_scope.value != self.scope:
            logger.warning(
                "Task %s requests exec_scope=%s but registry store is scope=%s",
                task_name,
                options.exec_scope.value,
                self.scope,
            )

        rec = options.effective_recurrence()
        if rec is None:
            raise SetupFailed(f"no usable recurrence for task {task_name!r}")

        try:
            args_raw = codec.encode_args(args)
        except (TypeError, ValueError) as exc:
            raise SetupFailed(f"arguments of task {task_name!r} are not JSON-serializable") from exc

        try:
            handle = self._scheduler.create_recurring_trigger(task_name, rec.unit, rec.every)
        except SchedulerFailure as exc:
            raise SetupFailed(f"scheduler refused trigger for task {task_name!r}") from exc
        if not handle:
            raise SetupFailed(f"scheduler returned no handle for task {task_name!r}")

        try:
            self._store.set_batch(
                codec.encode_setup(task_name, options, trigger_handle=handle, args_raw=args_raw)
            )
        except PersistenceFailure as exc:
            self._cancel_trigger(handle)
            raise SetupFailed(f"could not persist setup of task {task_name!r}") from exc

        logger.info(
            "Task %s set up: task_count=%s every %s %s handle=%s",
            task_name,
            options.task_count,
            rec.every,
            rec.unit.value,
            handle,
        )
        return TaskRun(
            task_name=task_name,
            trigger_handle=handle,
            setup_options=options,
            func_args=codec.decode_args(args_raw),
        )

    def get_start_index(self, task_name: str) -> int:
        """Start this invocation's quota clock and return the index to resume from."""
        _require_name(task_name)
        # Set-up tasks are recognised by their raw task count so that options
        # which fail to decode never turn a recurring task into an ad-hoc one.
        scheduled = self._store.get(codec.task_count_key(task_name)) is not None
        options = self.get_setup_options(task_name) if scheduled else None

        quota = self._max_execution_seconds
        if options is not None:
            quota = min(quota, options.max_runtime_seconds)
        self._invocations[task_name] = _Invocation(
            started_at=self._clock(),
            quota_seconds=quota,
            scheduled=scheduled,
        )
        if not scheduled:
            # The one-shot resume trigger that started this run has fired.
            self._delete_trigger(task_name)
        self.set_running(task_name, True)

        completed = codec.parse_int(self._store.get(codec.completed_index_key(task_name)))
        start = TaskRun(task_name, completed_index=completed).next_index
        logger.info("Task %s starting at index %s", task_name, start)
        return start

    def check_should_suspend(self, task_name: str, current_index: int) -> bool:
        """
        True once this invocation has used up its quota.

        The quota is fixed when get_start_index runs: max_execution_seconds at
        that moment, lowered to the task's setup max_runtime_seconds when that
        is smaller. Setter calls made later only apply to the next invocation.

        The running flag is cleared before returning True. Tasks that were set
        up are re-invoked by their recurring trigger; tasks that were not get a
        one-shot trigger trigger_delay_seconds from now.
        """
        inv = self._invocations.get(task_name)
        if inv is None:
            raise RuntimeError(f"get_start_index({task_name!r}) was not called in this process")

        quota = inv.quota_seconds
        elapsed = self._clock() - inv.started_at
        if elapsed < quota:
            return False

        self.set_running(task_name, False)
        if not inv.scheduled:
            self._schedule_resume(task_name)
        logger.info(
            "Task %s suspending at index %s after %.1fs (quota %ss)",
            task_name,
            current_index,
            elapsed,
            quota,
        )
        return True

    def set_task_completed(self, task_name: str, index: int) -> None:
        _require_name(task_name)
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"index must be a non-negative integer, got {index!r}")

        key = codec.completed_index_key(task_name)
        previous = codec.parse_int(self._store.get(key))
        if previous is not None and index < previous:
            raise ValueError(
                f"task {task_name!r} already completed index {previous}; refusing {index}"
            )
        self._store.set(key, str(index))
        logger.debug("Task %s completed index %s", task_name, index)

    def end(self, task_name: str) -> bool:
        """Reset and return True if every increment is done, else leave state alone."""
        options = self.get_setup_options(task_name)
        completed = codec.parse_int(self._store.get(codec.completed_index_key(task_name)))
        if options is None or completed is None:
            return False
        if completed != options.task_count - 1:
            return False

        self.reset(task_name)
        logger.info("Task %s finished all %s increments", task_name, options.task_count)
        return True

    def reset(self, task_name: str) -> None:
        """Cancel the task's trigger and delete all of its properties. Idempotent."""
        self._delete_trigger(task_name)
        for key in codec.all_keys(task_name):
            self._store.delete(key)
        if self._invocations.pop(task_name, None) is not None:
            logger.debug("Dropped in-memory invocation of %s", task_name)
        logger.info("Task %s reset", task_name)

    # ---- queries ----

    def get_setup_options(self, task_name: str) -> SetupOptions | None:
        return codec.load_setup_options(self._store, task_name)

    def get_task_run(self, task_name: str) -> TaskRun:
        return codec.load_task_run(self._store, task_name)

    def has_trigger(self, task_name: str) -> bool:
        return bool(self._store.get(codec.trigger_key(task_name)))

    # ---- triggers ----

    def _schedule_resume(self, task_name: str) -> None:
        self._delete_trigger(task_name)
        fire_at = self._clock() + self._trigger_delay_seconds
        handle = self._scheduler.create_one_shot_trigger(task_name, fire_at)
        self._store.set(codec.trigger_key(task_name), handle)
        logger.info("Task %s will resume in %ss handle=%s", task_name, self._trigger_delay_seconds, handle)

    def _delete_trigger(self, task_name: str) -> None:
        key = codec.trigger_key(task_name)
        handle = self._store.get(key)
        if handle:
            self._cancel_trigger(handle)
        self._store.delete(key)

    def _cancel_trigger(self, handle: str) -> None:
        # Best-effort: the scheduler may already have forgotten this trigger.
        try:
            for trigger in self._scheduler.list_triggers():
                if trigger.handle == handle:
                    self._scheduler.delete_trigger(handle)
        except SchedulerFailure:
            logger.warning("Could not cancel trigger %s", handle, exc_info=True)
