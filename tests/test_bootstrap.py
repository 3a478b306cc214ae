# tests/test_bootstrap.py

from __future__ import annotations

import sys
import types

import pytest

from longrun.cli.bootstrap import create_initial_state, load_task_modules
from longrun.runs.run_models import Recurrence, SetupOptions
from longrun.scheduling.functions import FunctionRegistry
from longrun.scheduling.trigger_loop import dispatch_due_triggers


def test_state_is_wired_from_settings(settings) -> None:
    state = create_initial_state(settings=settings, scope="script", functions=FunctionRegistry())

    assert settings.db_path.exists()
    assert state.store.scope == "script"
    assert state.registry.scope == "script"
    assert state.registry.max_execution_seconds == 240
    assert state.registry.trigger_delay_seconds == 60


@pytest.mark.asyncio
async def test_task_module_hook_registers_and_runs(settings, monkeypatch) -> None:
    state = create_initial_state(settings=settings, functions=FunctionRegistry())
    seen: list[int] = []

    module = types.ModuleType("longrun_test_tasks")

    def register_tasks(st) -> None:
        @st.functions.task("job")
        def job(event) -> None:
            start = st.registry.get_start_index("job")
            seen.append(start)
            st.registry.set_task_completed("job", start)

    module.register_tasks = register_tasks
    monkeypatch.setitem(sys.modules, "longrun_test_tasks", module)

    assert load_task_modules(state, ["longrun_test_tasks"]) == ["longrun_test_tasks"]
    assert state.functions.names() == ["job"]

    run = state.registry.setup("job", SetupOptions(task_count=2, recurrence=Recurrence.minutes(1)))
    (trigger,) = state.scheduler.list_triggers()
    assert trigger.handle == run.trigger_handle

    assert await dispatch_due_triggers(state.scheduler, state.functions, now_ts=trigger.fire_at) == 1
    assert seen == [0]
    assert state.registry.end("job") is False

    (trigger,) = state.scheduler.list_triggers()
    assert await dispatch_due_triggers(state.scheduler, state.functions, now_ts=trigger.fire_at) == 1
    assert seen == [0, 1]
    assert state.registry.end("job") is True
    assert state.scheduler.list_triggers() == []
