# src/longrun/scheduling/trigger_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path
from uuid import uuid4

from ..errors import SchedulerFailure
from ..runs.run_models import Recurrence, RecurrenceUnit
from .trigger_models import Trigger, TriggerKind

logger = logging.getLogger(__name__)


class SqliteTriggerScheduler:
    """
    SQLite-backed trigger table.

    Triggers only record *when* a named function should run next; the trigger
    loop (trigger_loop.py) polls for due rows and invokes the function.

    - one-shot triggers are removed when claimed
    - recurring triggers have fire_at pushed forward when claimed
    """

    def __init__(
        self,
        db_path: str | Path = "longrun.sqlite3",
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._ensure_schema()
        logger.info("TriggerScheduler ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        except sqlite3.Error as exc:
            raise SchedulerFailure(f"cannot open trigger table {self._db_path}") from exc
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS triggers (
                    handle TEXT PRIMARY KEY,
                    func_name TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    unit TEXT,
                    every_n INTEGER,
                    fire_at REAL NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_triggers_fire_at ON triggers(fire_at)")
            conn.commit()
        except sqlite3.Error as exc:
            raise SchedulerFailure("cannot create triggers table") from exc
        finally:
            conn.close()

    @staticmethod
    def _row_to_trigger(row: sqlite3.Row) -> Trigger:
        unit = row["unit"]
        return Trigger(
            handle=str(row["handle"]),
            func_name=str(row["func_name"]),
            kind=TriggerKind.from_db(row["kind"]),
            fire_at=float(row["fire_at"]),
            created_at=float(row["created_at"] or 0.0),
            unit=RecurrenceUnit(unit) if unit else None,
            every=int(row["every_n"]) if row["every_n"] is not None else None,
        )

    def _insert(
        self,
        *,
        func_name: str,
        kind: TriggerKind,
        fire_at: float,
        unit: RecurrenceUnit | None = None,
        every: int | None = None,
    ) -> str:
        if not func_name or not func_name.strip():
            raise ValueError("func_name is required")

        handle = uuid4().hex
        conn = self._get_conn()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO triggers(handle, func_name, kind, unit, every_n, fire_at, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        handle,
                        func_name,
                        kind.value,
                        unit.value if unit else None,
                        every,
                        float(fire_at),
                        self._clock(),
                    ),
                )
        except sqlite3.Error as exc:
            raise SchedulerFailure(f"cannot create trigger for {func_name!r}") from exc
        finally:
            conn.close()

        logger.debug("Trigger created handle=%s func=%s kind=%s fire_at=%s", handle, func_name, kind.value, fire_at)
        return handle

    # ---- scheduler API ----

    def create_one_shot_trigger(self, func_name: str, fire_at: float) -> str:
        return self._insert(func_name=func_name, kind=TriggerKind.ONE_SHOT, fire_at=fire_at)

    def create_recurring_trigger(self, func_name: str, unit: RecurrenceUnit, every: int) -> str:
        try:
            rec = Recurrence(unit, every)
        except ValueError as exc:
            raise SchedulerFailure(str(exc)) from exc
        return self._insert(
            func_name=func_name,
            kind=TriggerKind.RECURRING,
            fire_at=self._clock() + rec.interval_seconds,
            unit=rec.unit,
            every=rec.every,
        )

    def list_triggers(self) -> list[Trigger]:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT * FROM triggers ORDER BY created_at ASC")
            return [self._row_to_trigger(r) for r in cur.fetchall()]
        except sqlite3.Error as exc:
            raise SchedulerFailure("cannot list triggers") from exc
        finally:
            conn.close()

    def delete_trigger(self, handle: str) -> bool:
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute("DELETE FROM triggers WHERE handle = ?", (handle,))
            deleted = cur.rowcount == 1
        except sqlite3.Error as exc:
            raise SchedulerFailure(f"cannot delete trigger {handle}") from exc
        finally:
            conn.close()

        if deleted:
            logger.debug("Trigger deleted handle=%s", handle)
        return deleted

    # ---- trigger loop API ----

    def list_due_triggers(self, *, now_ts: float, limit: int = 32) -> list[Trigger]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT *
                FROM triggers
                WHERE fire_at <= ?
                ORDER BY fire_at ASC, created_at ASC
                    LIMIT ?
                """,
                (float(now_ts), int(limit)),
            )
            return [self._row_to_trigger(r) for r in cur.fetchall()]
        except sqlite3.Error as exc:
            raise SchedulerFailure("cannot list due triggers") from exc
        finally:
            conn.close()

    def claim_trigger(self, trigger: Trigger, *, now_ts: float) -> bool:
        """
        Best-effort claim so a due trigger fires once.

        Atomically consumes the row (one-shot) or moves fire_at past now_ts
        (recurring), provided fire_at still has the value we listed.
        Returns True if this caller won the claim.
        """
        next_fire = trigger.next_fire_after(now_ts)
        conn = self._get_conn()
        try:
            with conn:
                if next_fire is None:
                    cur = conn.execute(
                        "DELETE FROM triggers WHERE handle = ? AND fire_at = ?",
                        (trigger.handle, trigger.fire_at),
                    )
                else:
                    cur = conn.execute(
                        "UPDATE triggers SET fire_at = ? WHERE handle = ? AND fire_at = ?",
                        (next_fire, trigger.handle, trigger.fire_at),
                    )
            return cur.rowcount == 1
        except sqlite3.Error as exc:
            raise SchedulerFailure(f"cannot claim trigger {trigger.handle}") from exc
        finally:
            conn.close()
