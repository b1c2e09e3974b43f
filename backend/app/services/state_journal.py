"""SQLite-backed journal of dispatched store actions."""
from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock, RLock
from typing import Any, Dict, List, Optional, Tuple

from app.core.config import get_settings
from app.core.logging import logger


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=True)


class StateJournal:
    """Append-only action log replayed at startup, compacted into a state snapshot past `max_entries`."""

    _lock_registry: dict[str, RLock] = {}
    _lock_registry_guard = Lock()

    def __init__(self, db_path: Optional[str] = None, max_entries: Optional[int] = None) -> None:
        settings = get_settings()
        self._db_path = Path(db_path or settings.state_db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._max_entries = int(max_entries or settings.journal_max_entries)
        self._lock = self._get_shared_lock(str(self._db_path.resolve()))
        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            timeout=30.0,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute("PRAGMA synchronous = NORMAL")
        self._conn.execute("PRAGMA busy_timeout = 30000")
        self._initialize_schema()

    @classmethod
    def _get_shared_lock(cls, key: str) -> RLock:
        with cls._lock_registry_guard:
            lock = cls._lock_registry.get(key)
            if lock is None:
                lock = RLock()
                cls._lock_registry[key] = lock
            return lock

    @property
    def path(self) -> Path:
        return self._db_path

    def _initialize_schema(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS actions (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    action_type TEXT NOT NULL,
                    recorded_at TEXT NOT NULL,
                    payload_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_actions_type ON actions (action_type);

                CREATE TABLE IF NOT EXISTS sequences (
                    key_name TEXT PRIMARY KEY,
                    next_value INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    through_seq INTEGER NOT NULL,
                    recorded_at TEXT NOT NULL,
                    state_json TEXT NOT NULL
                );
                """
            )
            self._conn.commit()

    def append(self, action: Dict[str, Any]) -> int:
        """Persist one serialized action and return its sequence number."""
        action_type = str(action.get("type") or "")
        with self._lock:
            cursor = self._conn.execute(
                "INSERT INTO actions (action_type, recorded_at, payload_json) VALUES (?, ?, ?)",
                (action_type, _utc_now_iso(), _json_dumps(action)),
            )
            self._conn.commit()
            return int(cursor.lastrowid)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def needs_compaction(self) -> bool:
        return self.count() > self._max_entries

    def compact(self, state_json: str, through_seq: int) -> None:
        """Replace actions up to `through_seq` with a snapshot of the state they produce."""
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO snapshots (id, through_seq, recorded_at, state_json)
                VALUES (1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    through_seq = excluded.through_seq,
                    recorded_at = excluded.recorded_at,
                    state_json = excluded.state_json
                """,
                (int(through_seq), _utc_now_iso(), state_json),
            )
            self._conn.execute("DELETE FROM actions WHERE seq <= ?", (int(through_seq),))
            self._conn.commit()
        logger.info("Store journal compacted", through_seq=through_seq, path=str(self._db_path))

    def load_snapshot(self) -> Optional[Tuple[int, str]]:
        """`(through_seq, state_json)` of the latest snapshot, if any."""
        with self._lock:
            row = self._conn.execute("SELECT through_seq, state_json FROM snapshots WHERE id = 1").fetchone()
        if row is None:
            return None
        return int(row["through_seq"]), str(row["state_json"])

    def entries(self, after_seq: int = 0) -> List[Dict[str, Any]]:
        """Journaled actions newer than `after_seq`, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT payload_json FROM actions WHERE seq > ? ORDER BY seq ASC",
                (int(after_seq),),
            ).fetchall()
        entries: List[Dict[str, Any]] = []
        for row in rows:
            try:
                entries.append(json.loads(row["payload_json"]))
            except json.JSONDecodeError as exc:
                logger.warning("Skipping unreadable journal entry", error=str(exc))
        return entries

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS c FROM actions").fetchone()
        return int(row["c"]) if row else 0

    def next_sequence(self, key: str, start: int = 1) -> int:
        """Monotonic per-key counter used for human-readable ids."""
        with self._lock:
            row = self._conn.execute(
                "SELECT next_value FROM sequences WHERE key_name = ?",
                (key,),
            ).fetchone()
            if row is None:
                current = start
                self._conn.execute(
                    "INSERT INTO sequences (key_name, next_value) VALUES (?, ?)",
                    (key, current + 1),
                )
            else:
                current = int(row["next_value"])
                self._conn.execute(
                    "UPDATE sequences SET next_value = ? WHERE key_name = ?",
                    (current + 1, key),
                )
            self._conn.commit()
            return current

    def clear(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM actions")
            self._conn.execute("DELETE FROM sequences")
            self._conn.execute("DELETE FROM snapshots")
            self._conn.commit()
