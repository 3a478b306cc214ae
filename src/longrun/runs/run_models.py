# src/longrun/runs/run_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

ALLOWED_EVERY_MINUTES = (1, 5, 10, 15, 30)


class ExecScope(StrEnum):
    """Namespace a task's properties live in."""

    USER = "user"
    SCRIPT = "script"
    DOCUMENT = "document"

    @classmethod
    def parse(cls, raw: str | None) -> ExecScope:
        if not raw:
            return cls.USER
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.USER


class RecurrenceUnit(StrEnum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"

    @property
    def seconds(self) -> int:
        return _UNIT_SECONDS[self]


_UNIT_SECONDS = {
    RecurrenceUnit.MINUTES: 60,
    RecurrenceUnit.HOURS: 60 * 60,
    RecurrenceUnit.DAYS: 24 * 60 * 60,
    RecurrenceUnit.WEEKS: 7 * 24 * 60 * 60,
}

# Resolution order when several recurrence fields are supplied at once.
RECURRENCE_PRECEDENCE = (
    RecurrenceUnit.MINUTES,
    RecurrenceUnit.HOURS,
    RecurrenceUnit.DAYS,
    RecurrenceUnit.WEEKS,
)


@dataclass(frozen=True, slots=True)
class Recurrence:
    """
    Fixed recurrence of a trigger: fire every `every` `unit`s.

    Minute recurrences are limited to the intervals a time-based scheduler can
    honour (1, 5, 10, 15 or 30).
    """

    unit: RecurrenceUnit
    every: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit", RecurrenceUnit(self.unit))
        if isinstance(self.every, bool) or not isinstance(self.every, int):
            raise ValueError(f"every must be an integer, got {self.every!r}")
        if self.every <= 0:
            raise ValueError(f"every must be positive, got {self.every}")
        if self.unit == RecurrenceUnit.MINUTES and self.every not in ALLOWED_EVERY_MINUTES:
            raise ValueError(
                f"every_n_minutes must be one of {ALLOWED_EVERY_MINUTES}, got {self.every}"
            )

    @property
    def interval_seconds(self) -> int:
        return self.unit.seconds * self.every

    @classmethod
    def minutes(cls, n: int) -> Recurrence:
        return cls(RecurrenceUnit.MINUTES, n)

    @classmethod
    def hours(cls, n: int) -> Recurrence:
        return cls(RecurrenceUnit.HOURS, n)

    @classmethod
    def days(cls, n: int) -> Recurrence:
        return cls(RecurrenceUnit.DAYS, n)

    @classmethod
    def weeks(cls, n: int) -> Recurrence:
        return cls(RecurrenceUnit.WEEKS, n)

    @classmethod
    def from_fields(
        cls,
        *,
        minutes: int | None = None,
        hours: int | None = None,
        days: int | None = None,
        weeks: int | None = None,
        is_addon: bool = False,
    ) -> Recurrence | None:
        """
        Resolve the legacy "every_n_*" fields into a single recurrence.

        Precedence is minutes > hours > days > weeks. Minutes are skipped for
        add-on hosted tasks, whose scheduler cannot fire more often than hourly.
        Returns None when nothing resolves.
        """
        supplied = {
            RecurrenceUnit.MINUTES: minutes,
            RecurrenceUnit.HOURS: hours,
            RecurrenceUnit.DAYS: days,
            RecurrenceUnit.WEEKS: weeks,
        }
        for unit in RECURRENCE_PRECEDENCE:
            if unit == RecurrenceUnit.MINUTES and is_addon:
                continue
            n = supplied[unit]
            if n:
                return cls(unit, int(n))
        return None


@dataclass(frozen=True, slots=True)
class SetupOptions:
    task_count: int
    recurrence: Recurrence | None = None
    max_runtime_seconds: int = 240
    exec_scope: ExecScope = ExecScope.USER
    is_addon: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "exec_scope", ExecScope(self.exec_scope))
        if isinstance(self.task_count, bool) or not isinstance(self.task_count, int):
            raise ValueError(f"task_count must be an integer, got {self.task_count!r}")
        if self.task_count < 1:
            raise ValueError(f"task_count must be >= 1, got {self.task_count}")
        if isinstance(self.max_runtime_seconds, bool) or not isinstance(self.max_runtime_seconds, int):
            raise ValueError(f"max_runtime_seconds must be an integer, got {self.max_runtime_seconds!r}")
        if self.max_runtime_seconds <= 0:
            raise ValueError(
                f"max_runtime_seconds must be positive, got {self.max_runtime_seconds}"
            )

    def effective_recurrence(self) -> Recurrence | None:
        """The recurrence a trigger will actually be created with, if any."""
        rec = self.recurrence
        if rec is None:
            return None
        if self.is_addon and rec.unit == RecurrenceUnit.MINUTES:
            return None
        return rec


@dataclass(slots=True)
class TaskRun:
    """Everything persisted for one task name."""

    task_name: str
    running: bool = False
    trigger_handle: str | None = None
    setup_options: SetupOptions | None = None
    func_args: list[Any] | None = None
    completed_index: int | None = None

    @property
    def next_index(self) -> int:
        return 0 if self.completed_index is None else self.completed_index + 1
