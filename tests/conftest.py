# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from longrun.runs.run_registry import RunRegistry

from .fakes import FakeClock, FakeScheduler, MemoryPropertyStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap.create_initial_state.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="longrun-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        db_path=tmp_path / "data" / "longrun.sqlite3",
        exec_scope="user",
        max_execution_seconds=240,
        trigger_delay_seconds=60,
        poll_interval_seconds=0.01,
        batch_limit=8,
        task_modules=[],
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> MemoryPropertyStore:
    return MemoryPropertyStore()


@pytest.fixture()
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)


@pytest.fixture()
def registry(store: MemoryPropertyStore, scheduler: FakeScheduler, clock: FakeClock) -> RunRegistry:
    """RunRegistry wired with in-memory fakes and a manual clock."""
    return RunRegistry(store, scheduler, clock=clock)
