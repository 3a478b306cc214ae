# src/longrun/core/ports.py

"""
Ports (interfaces) used by the run registry.

The registry depends on Protocols instead of concrete implementations so the
SQLite backends can be swapped for fakes in tests or for another host's
property service / trigger API.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from ..runs.run_models import RecurrenceUnit
from ..scheduling.trigger_models import Trigger


class PropertyStore(Protocol):
    """Durable string key/value storage bound to one execution scope."""

    @property
    def scope(self) -> str: ...

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def set_batch(self, values: Mapping[str, str]) -> None: ...
    def delete(self, key: str) -> None: ...


class TriggerScheduler(Protocol):
    """Creates and cancels time-based triggers that re-invoke a named function."""

    def create_one_shot_trigger(self, func_name: str, fire_at: float) -> str: ...

    def create_recurring_trigger(
            self,
            func_name: str,
            unit: RecurrenceUnit,
            every: int,
    ) -> str: ...

    def list_triggers(self) -> list[Trigger]: ...
    def delete_trigger(self, handle: str) -> bool: ...


class TriggerRepo(TriggerScheduler, Protocol):
    # Trigger loop API
    def list_due_triggers(self, *, now_ts: float, limit: int = 32) -> list[Trigger]: ...
    def claim_trigger(self, trigger: Trigger, *, now_ts: float) -> bool: ...
