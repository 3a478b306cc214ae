# tests/test_trigger_store.py

from __future__ import annotations

from pathlib import Path

import pytest

from longrun.errors import SchedulerFailure
from longrun.runs.run_models import RecurrenceUnit
from longrun.scheduling.trigger_models import TriggerKind
from longrun.scheduling.trigger_store import SqliteTriggerScheduler

from .fakes import FakeClock


@pytest.fixture()
def triggers(tmp_path: Path, clock: FakeClock) -> SqliteTriggerScheduler:
    return SqliteTriggerScheduler(tmp_path / "t.sqlite3", clock=clock)


def test_create_list_delete(triggers: SqliteTriggerScheduler, clock: FakeClock) -> None:
    once = triggers.create_one_shot_trigger("job", clock() + 60)
    every = triggers.create_recurring_trigger("job", RecurrenceUnit.HOURS, 2)

    listed = {t.handle: t for t in triggers.list_triggers()}
    assert set(listed) == {once, every}
    assert listed[once].kind == TriggerKind.ONE_SHOT
    assert listed[every].kind == TriggerKind.RECURRING
    assert listed[every].fire_at == clock() + 2 * 3600

    assert triggers.delete_trigger(once) is True
    assert triggers.delete_trigger(once) is False
    assert [t.handle for t in triggers.list_triggers()] == [every]


def test_recurring_minutes_must_be_supported(triggers: SqliteTriggerScheduler) -> None:
    with pytest.raises(SchedulerFailure):
        triggers.create_recurring_trigger("job", RecurrenceUnit.MINUTES, 7)


def test_due_and_claim_one_shot(triggers: SqliteTriggerScheduler, clock: FakeClock) -> None:
    handle = triggers.create_one_shot_trigger("job", clock() + 60)
    assert triggers.list_due_triggers(now_ts=clock()) == []

    clock.advance(60)
    (due,) = triggers.list_due_triggers(now_ts=clock())
    assert due.handle == handle

    assert triggers.claim_trigger(due, now_ts=clock()) is True
    assert triggers.claim_trigger(due, now_ts=clock()) is False
    assert triggers.list_triggers() == []


def test_claim_recurring_skips_missed_slots(triggers: SqliteTriggerScheduler, clock: FakeClock) -> None:
    start = clock()
    triggers.create_recurring_trigger("job", RecurrenceUnit.MINUTES, 5)

    clock.advance(17 * 60)  # slots at +5, +10, +15 missed
    (due,) = triggers.list_due_triggers(now_ts=clock())
    assert triggers.claim_trigger(due, now_ts=clock()) is True

    (after,) = triggers.list_triggers()
    assert after.fire_at == start + 20 * 60
    assert triggers.list_due_triggers(now_ts=clock()) == []
