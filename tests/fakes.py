# tests/fakes.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace

from longrun.errors import PersistenceFailure, SchedulerFailure
from longrun.runs.run_models import Recurrence, RecurrenceUnit
from longrun.scheduling.trigger_models import Trigger, TriggerKind


class FakeClock:
    """Manually advanced clock; pass as clock=... to make quota checks deterministic."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryPropertyStore:
    """
    In-memory PropertyStore.

    - fail_writes: every set/set_batch/delete raises PersistenceFailure
    - fail_batches: only set_batch raises (setup's single write)
    """

    def __init__(self, scope: str = "user") -> None:
        self._scope = scope
        self.data: dict[str, str] = {}
        self.fail_writes = False
        self.fail_batches = False

    @property
    def scope(self) -> str:
        return self._scope

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceFailure("store is read-only")
        self.data[key] = value

    def set_batch(self, values: Mapping[str, str]) -> None:
        if self.fail_writes or self.fail_batches:
            raise PersistenceFailure("store rejected batch")
        self.data.update(values)

    def delete(self, key: str) -> None:
        if self.fail_writes:
            raise PersistenceFailure("store is read-only")
        self.data.pop(key, None)


class FakeScheduler:
    """
    In-memory TriggerRepo.

    - refuse_create: create_* raise SchedulerFailure
    - fail_list: list_triggers raises SchedulerFailure (deletion path)
    """

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock or FakeClock()
        self.triggers: dict[str, Trigger] = {}
        self.refuse_create = False
        self.fail_list = False
        self._seq = 0

    def _add(self, trigger: Trigger) -> str:
        if self.refuse_create:
            raise SchedulerFailure("trigger quota exceeded")
        self.triggers[trigger.handle] = trigger
        return trigger.handle

    def _next_handle(self) -> str:
        self._seq += 1
        return f"trigger-{self._seq}"

    def create_one_shot_trigger(self, func_name: str, fire_at: float) -> str:
        return self._add(
            Trigger(
                handle=self._next_handle(),
                func_name=func_name,
                kind=TriggerKind.ONE_SHOT,
                fire_at=fire_at,
                created_at=self.clock(),
            )
        )

    def create_recurring_trigger(self, func_name: str, unit: RecurrenceUnit, every: int) -> str:
        rec = Recurrence(unit, every)
        return self._add(
            Trigger(
                handle=self._next_handle(),
                func_name=func_name,
                kind=TriggerKind.RECURRING,
                fire_at=self.clock() + rec.interval_seconds,
                created_at=self.clock(),
                unit=rec.unit,
                every=rec.every,
            )
        )

    def list_triggers(self) -> list[Trigger]:
        if self.fail_list:
            raise SchedulerFailure("scheduler unavailable")
        return list(self.triggers.values())

    def delete_trigger(self, handle: str) -> bool:
        return self.triggers.pop(handle, None) is not None

    def list_due_triggers(self, *, now_ts: float, limit: int = 32) -> list[Trigger]:
        due = [t for t in self.triggers.values() if t.fire_at <= now_ts]
        due.sort(key=lambda t: (t.fire_at, t.created_at))
        return due[:limit]

    def claim_trigger(self, trigger: Trigger, *, now_ts: float) -> bool:
        current = self.triggers.get(trigger.handle)
        if current is None or current.fire_at != trigger.fire_at:
            return False
        nxt = trigger.next_fire_after(now_ts)
        if nxt is None:
            del self.triggers[trigger.handle]
        else:
            self.triggers[trigger.handle] = replace(current, fire_at=nxt)
        return True
