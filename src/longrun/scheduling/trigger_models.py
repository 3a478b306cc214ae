# src/longrun/scheduling/trigger_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..runs.run_models import Recurrence, RecurrenceUnit


class TriggerKind(StrEnum):
    ONE_SHOT = "one_shot"
    RECURRING = "recurring"

    @classmethod
    def from_db(cls, raw: str | None) -> TriggerKind:
        if not raw:
            return cls.ONE_SHOT
        try:
            return cls(raw)
        except ValueError:
            return cls.ONE_SHOT


@dataclass(frozen=True, slots=True)
class Trigger:
    handle: str
    func_name: str
    kind: TriggerKind
    fire_at: float
    created_at: float

    unit: RecurrenceUnit | None = None
    every: int | None = None

    @property
    def recurrence(self) -> Recurrence | None:
        if self.kind != TriggerKind.RECURRING or self.unit is None or self.every is None:
            return None
        return Recurrence(self.unit, self.every)

    def next_fire_after(self, now_ts: float) -> float | None:
        """
        Next fire time strictly after now_ts, skipping missed slots.

        None for one-shot triggers (they are consumed when fired).
        """
        rec = self.recurrence
        if rec is None:
            return None
        step = float(rec.interval_seconds)
        nxt = self.fire_at + step
        if nxt <= now_ts:
            missed = int((now_ts - nxt) // step) + 1
            nxt += missed * step
        return nxt


@dataclass(frozen=True, slots=True)
class TriggerEvent:
    """Passed to a task function when its trigger fires."""

    handle: str
    func_name: str
    fired_at: float
