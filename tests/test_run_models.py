# tests/test_run_models.py

from __future__ import annotations

import pytest

from longrun.runs import run_codec as codec
from longrun.runs.run_models import ExecScope, Recurrence, RecurrenceUnit, SetupOptions, TaskRun

from .fakes import MemoryPropertyStore


def test_recurrence_precedence_minutes_first() -> None:
    rec = Recurrence.from_fields(minutes=15, hours=2, days=1, weeks=1)
    assert rec == Recurrence.minutes(15)
    assert Recurrence.from_fields(hours=3, weeks=2) == Recurrence.hours(3)
    assert Recurrence.from_fields(days=2, weeks=2) == Recurrence.days(2)
    assert Recurrence.from_fields(weeks=2) == Recurrence.weeks(2)
    assert Recurrence.from_fields() is None


def test_recurrence_addon_skips_minutes() -> None:
    assert Recurrence.from_fields(minutes=5, hours=1, is_addon=True) == Recurrence.hours(1)
    assert Recurrence.from_fields(minutes=5, is_addon=True) is None


@pytest.mark.parametrize("n", [2, 0, 60])
def test_recurrence_rejects_unsupported_minutes(n: int) -> None:
    with pytest.raises(ValueError):
        Recurrence.minutes(n)


def test_recurrence_interval_seconds() -> None:
    assert Recurrence.minutes(30).interval_seconds == 1800
    assert Recurrence.weeks(2).interval_seconds == 14 * 24 * 3600
    with pytest.raises(ValueError):
        Recurrence.days(0)


def test_setup_options_validation_and_effective_recurrence() -> None:
    with pytest.raises(ValueError):
        SetupOptions(task_count=0, recurrence=Recurrence.hours(1))
    with pytest.raises(ValueError):
        SetupOptions(task_count=1, recurrence=Recurrence.hours(1), max_runtime_seconds=0)
    with pytest.raises(ValueError):
        SetupOptions(task_count=1, recurrence=Recurrence.hours(1), max_runtime_seconds=1.5)
    with pytest.raises(ValueError):
        SetupOptions(task_count=1, recurrence=Recurrence.hours(1), max_runtime_seconds="30")
    with pytest.raises(ValueError):
        SetupOptions(task_count=1, recurrence=Recurrence.hours(1), max_runtime_seconds=True)

    opts = SetupOptions(task_count=2, recurrence=Recurrence.minutes(1), is_addon=True, exec_scope="script")
    assert opts.exec_scope is ExecScope.SCRIPT
    assert opts.effective_recurrence() is None
    assert SetupOptions(task_count=2, recurrence=Recurrence.days(1), is_addon=True).effective_recurrence() == Recurrence.days(1)


def test_exec_scope_parse_defaults_to_user() -> None:
    assert ExecScope.parse(None) is ExecScope.USER
    assert ExecScope.parse(" Document ") is ExecScope.DOCUMENT
    assert ExecScope.parse("bogus") is ExecScope.USER


def test_task_run_next_index() -> None:
    assert TaskRun("job").next_index == 0
    assert TaskRun("job", completed_index=4).next_index == 5


def test_legacy_layout_with_several_recurrences_resolves_by_precedence() -> None:
    store = MemoryPropertyStore()
    store.data.update(
        {
            "option_task_count_job": "10",
            "option_max_runtime_job": "200",
            "option_exec_scope_job": "document",
            "option_is_addonjob": "true",
            "option_trigger_every_n_minutes_job": "5",
            "option_trigger_every_n_days_job": "1",
            "args_job": "not json",
            "task_completed_index_job": "3",
        }
    )

    run = codec.load_task_run(store, "job")

    assert run.setup_options == SetupOptions(
        task_count=10,
        recurrence=Recurrence(RecurrenceUnit.DAYS, 1),
        max_runtime_seconds=200,
        exec_scope=ExecScope.DOCUMENT,
        is_addon=True,
    )
    assert run.func_args == []
    assert run.completed_index == 3
    assert run.running is False


def test_all_keys_covers_every_prefix() -> None:
    keys = codec.all_keys("job")
    assert "running_job" in keys
    assert "trigger_job" in keys
    assert "option_is_addonjob" in keys
    assert "args_job" in keys
    assert "task_completed_index_job" in keys
    assert {f"option_trigger_every_n_{u.value}_job" for u in RecurrenceUnit} <= set(keys)


def test_encode_args_rejects_bare_strings() -> None:
    with pytest.raises(TypeError):
        codec.encode_args("abc")
    with pytest.raises(TypeError):
        codec.encode_args(b"abc")
    assert codec.encode_args(("abc",)) == '["abc"]'
    assert codec.encode_args(None) == "[]"
