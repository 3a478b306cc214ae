# src/longrun/scheduling/trigger_loop.py

"""
Trigger loop.

A small polling loop that:
- fetches due triggers,
- claims those whose function is registered (best-effort),
- invokes that function for each claimed trigger.

Triggers naming an unknown function stay unclaimed and due.

Failures of one function are logged and never stop the loop; a recurring
trigger simply fires again at its next slot.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

from ..core.ports import TriggerRepo
from .functions import FunctionRegistry
from .trigger_models import TriggerEvent

logger = logging.getLogger(__name__)


async def _invoke(func: Callable[..., Any], event: TriggerEvent) -> None:
    logger.info("Trigger fired handle=%s func=%s", event.handle, event.func_name)
    if inspect.iscoroutinefunction(func):
        await func(event)
    else:
        # Task bodies block for up to their quota.
        await asyncio.to_thread(func, event)


async def dispatch_due_triggers(
        scheduler: TriggerRepo,
        functions: FunctionRegistry,
        *,
        now_ts: float | None = None,
        batch_limit: int = 32,
) -> int:
    """
    Fire every trigger due at now_ts once. Returns how many functions ran.
    """
    if now_ts is None:
        now_ts = time.time()

    try:
        due = scheduler.list_due_triggers(now_ts=now_ts, limit=int(batch_limit))
    except Exception:
        logger.exception("list_due_triggers failed")
        return 0

    fired = 0
    for trigger in due:
        func = functions.get(trigger.func_name)
        if func is None:
            # Left unclaimed so it fires once the function is registered.
            logger.warning("No function registered for trigger handle=%s func=%s", trigger.handle, trigger.func_name)
            continue

        try:
            claimed = scheduler.claim_trigger(trigger, now_ts=now_ts)
        except Exception:
            logger.exception("claim_trigger failed handle=%s", trigger.handle)
            continue

        if not claimed:
            continue

        event = TriggerEvent(handle=trigger.handle, func_name=trigger.func_name, fired_at=now_ts)
        try:
            await _invoke(func, event)
            fired += 1
        except Exception:
            logger.exception("Task function failed handle=%s func=%s", trigger.handle, trigger.func_name)

    return fired


async def run_trigger_loop(
        scheduler: TriggerRepo,
        functions: FunctionRegistry,
        *,
        interval_seconds: float = 15.0,
        batch_limit: int = 32,
) -> None:
    """
    Poll for due triggers every interval_seconds and fire them.

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        fired = await dispatch_due_triggers(scheduler, functions, batch_limit=batch_limit)
        if fired:
            logger.debug("Trigger loop tick fired=%s", fired)
        await asyncio.sleep(sleep_s)
