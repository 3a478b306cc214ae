# src/longrun/storage/property_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Mapping
from pathlib import Path

from ..errors import PersistenceFailure
from ..runs.run_models import ExecScope

logger = logging.getLogger(__name__)


class SqlitePropertyStore:
    """
    SQLite key/value property store.

    One database can hold several scopes (user/script/document); an instance
    only ever reads and writes the scope it was opened with.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(
        self,
        db_path: str | Path = "longrun.sqlite3",
        scope: ExecScope | str = ExecScope.USER,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._scope = ExecScope(scope)
        self._ensure_schema()
        logger.info("PropertyStore ready db=%s scope=%s", self._db_path, self._scope.value)

    @property
    def scope(self) -> str:
        return self._scope.value

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"cannot open property store {self._db_path}") from exc
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS properties (
                    scope TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (scope, key)
                )
                """
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceFailure("cannot create properties table") from exc
        finally:
            conn.close()

    @staticmethod
    def _check_value(key: str, value: str) -> None:
        if not key:
            raise ValueError("property key is required")
        if not isinstance(value, str):
            raise TypeError(f"property {key!r} must be a string, got {type(value).__name__}")

    # ---- public API ----

    def get(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT value FROM properties WHERE scope = ? AND key = ?",
                (self._scope.value, key),
            )
            row = cur.fetchone()
            return None if row is None else str(row["value"])
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"cannot read property {key!r}") from exc
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        self.set_batch({key: value})

    def set_batch(self, values: Mapping[str, str]) -> None:
        """Write all values in one transaction."""
        if not values:
            return
        for key, value in values.items():
            self._check_value(key, value)

        now = time.time()
        conn = self._get_conn()
        try:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO properties(scope, key, value, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(scope, key) DO UPDATE
                    SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    [(self._scope.value, k, v, now) for k, v in values.items()],
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"cannot write {len(values)} properties") from exc
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = self._get_conn()
        try:
            with conn:
                conn.execute(
                    "DELETE FROM properties WHERE scope = ? AND key = ?",
                    (self._scope.value, key),
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"cannot delete property {key!r}") from exc
        finally:
            conn.close()
