# src/longrun/cli/main.py

"""
Worker entrypoint.

Initializes logging, builds AppState, imports task modules, then hosts the
trigger loop until SIGINT/SIGTERM, or fires due triggers once with --once
(for hosts that start a fresh process per tick, e.g. cron).
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal

from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..scheduling.trigger_loop import dispatch_due_triggers, run_trigger_loop
from .bootstrap import create_initial_state, load_task_modules

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="longrun-worker", description="Fire long-running task triggers.")
    parser.add_argument(
        "-m",
        "--module",
        action="append",
        default=[],
        help="Task module to import (repeatable); adds to LONGRUN_TASK_MODULES.",
    )
    parser.add_argument("--scope", default=None, help="Property scope: user, script or document.")
    parser.add_argument("--once", action="store_true", help="Fire due triggers once and exit.")
    parser.add_argument("--interval", type=float, default=None, help="Polling interval in seconds.")
    return parser


async def _serve(state: AppState, *, interval_seconds: float, batch_limit: int) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    runner = asyncio.create_task(
        run_trigger_loop(
            state.scheduler,
            state.functions,
            interval_seconds=interval_seconds,
            batch_limit=batch_limit,
        )
    )
    await stop.wait()
    logger.info("Stop requested, shutting down...")
    runner.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await runner


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings, scope=args.scope)
    load_task_modules(state, [*settings.task_modules, *args.module])

    names = state.functions.names()
    if not names:
        logger.warning("No task functions registered; triggers will be skipped.")
    else:
        logger.info("Registered task functions: %s", ", ".join(names))

    batch_limit = settings.batch_limit
    if args.once:
        fired = asyncio.run(dispatch_due_triggers(state.scheduler, state.functions, batch_limit=batch_limit))
        logger.info("Fired %s trigger(s).", fired)
        return 0

    interval = args.interval if args.interval is not None else settings.poll_interval_seconds
    asyncio.run(_serve(state, interval_seconds=interval, batch_limit=batch_limit))
    logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
