"""SQLite persistence for the ledger snapshot."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from grillstand.config import DB_PATH, STATE_KEY
from grillstand.errors import PersistenceError

logger = logging.getLogger(__name__)


class StatePort(Protocol):
    """Durable single-slot storage for the serialized ledger."""

    def save(self, snapshot: dict[str, Any]) -> None: ...

    def load(self) -> dict[str, Any] | None: ...


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteStatePort:
    """Keep the whole ledger snapshot as one JSON value in a key-value table."""

    def __init__(self, db_path: str | Path = DB_PATH, key: str = STATE_KEY) -> None:
        self.db_path = Path(db_path)
        self.key = key
        self._bootstrapped = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def bootstrap_schema(self) -> None:
        """Create the state table if it does not already exist."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_state (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Cannot prepare state store {self.db_path}: {exc}") from exc
        self._bootstrapped = True

    def save(self, snapshot: dict[str, Any]) -> None:
        if not self._bootstrapped:
            self.bootstrap_schema()
        encoded = json.dumps(snapshot, ensure_ascii=False)
        try:
            with self._connect() as conn:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO kv_state (key, value, updated_at) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                        """,
                        (self.key, encoded, _utc_now_iso()),
                    )
        except (sqlite3.Error, OSError) as exc:
            logger.error("state save failed path=%s error=%r", self.db_path, exc)
            raise PersistenceError(f"Saving state failed: {exc}") from exc

    def load(self) -> dict[str, Any] | None:
        """Return the stored snapshot, None when nothing is stored.

        Raises ValueError when the stored value is not a JSON object.
        """
        if not self._bootstrapped:
            self.bootstrap_schema()
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM kv_state WHERE key = ?", (self.key,)).fetchone()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Loading state failed: {exc}") from exc
        if row is None:
            return None
        decoded = json.loads(row[0])
        if not isinstance(decoded, dict):
            raise ValueError("Stored state is not an object")
        return decoded

    def write_raw(self, value: str) -> None:
        """Store a raw value in the slot; used by maintenance scripts and tests."""
        if not self._bootstrapped:
            self.bootstrap_schema()
        with self._connect() as conn:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_state (key, value, updated_at) VALUES (?, ?, ?)",
                    (self.key, value, _utc_now_iso()),
                )
