# src/longrun/runs/run_api.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .run_registry import RunRegistry

logger = logging.getLogger(__name__)

MainFunc = Callable[[int, list[Any]], None]
HookFunc = Callable[[int, list[Any]], None]


def execute_long_run(
    registry: RunRegistry,
    task_name: str,
    main_func: MainFunc,
    *,
    loop_count: int | None = None,
    args: list[Any] | None = None,
    initializer: HookFunc | None = None,
    finalizer: HookFunc | None = None,
) -> bool:
    """
    Run one invocation of an incremental task.

    main_func(index, args) is called for each remaining increment. The
    increment count and args default to what setup recorded. initializer runs
    once before increment 0; finalizer runs once after the last increment.

    Returns True when the task finished in this invocation, False if it
    suspended and will be resumed by its trigger.
    """
    options = registry.get_setup_options(task_name)
    if loop_count is None:
        if options is None:
            raise ValueError(f"loop_count is required: task {task_name!r} was not set up")
        loop_count = options.task_count
    if args is None:
        args = registry.get_args(task_name)

    start = registry.get_start_index(task_name)
    if start == 0 and initializer is not None:
        initializer(start, args)

    for index in range(start, loop_count):
        if registry.check_should_suspend(task_name, index):
            return False
        main_func(index, args)
        registry.set_task_completed(task_name, index)

    if options is not None and options.task_count == loop_count:
        finished = registry.end(task_name)
    else:
        # Not set up (or run with a different count): nothing will fire again.
        registry.reset(task_name)
        finished = True

    if finished and finalizer is not None:
        finalizer(loop_count - 1, args)
    return finished
