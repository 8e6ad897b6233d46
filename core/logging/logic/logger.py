"""
core/logging/logic/logger.py
============================

SQLite audit trail.

Each instance owns one connection (opened lazily, shared across threads under
a lock). Feature services write through :meth:`Logger.log`; diagnostic output
stays on stdlib ``logging``.
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from core.logging.models.log_entry import COLUMNS, LogEntry

_SCHEMA = """
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    user_id TEXT,
    username TEXT,
    feature TEXT NOT NULL,
    event TEXT NOT NULL,
    reference_id TEXT,
    message TEXT,
    log_level TEXT NOT NULL DEFAULT 'INFO'
);
CREATE INDEX IF NOT EXISTS idx_logs_reference ON logs(reference_id);
CREATE INDEX IF NOT EXISTS idx_logs_feature_event ON logs(feature, event);
"""

_INSERT = f"INSERT INTO logs ({', '.join(COLUMNS)}) VALUES ({', '.join('?' for _ in COLUMNS)})"


class Logger:
    """Append-only audit log; safe to share between threads."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        with self._lock:
            self._connection().executescript(_SCHEMA)

    # ---- connection ---------------------------------------------------------
    def _connection(self) -> sqlite3.Connection:
        # caller holds self._lock
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False, isolation_level=None)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ---- write --------------------------------------------------------------
    def log(
        self,
        feature: str,
        event: str,
        *,
        user_id: Optional[str] = None,
        username: Optional[str] = None,
        level: str = "INFO",
        reference_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> LogEntry:
        """Append one entry and return it with its row id."""
        entry = LogEntry(
            feature=feature,
            event=event,
            timestamp=datetime.now(timezone.utc),
            log_level=level,
            user_id=None if user_id is None else str(user_id),
            username=username or "unknown",
            reference_id=reference_id,
            message=message,
        )
        with self._lock:
            cur = self._connection().execute(_INSERT, entry.to_row())
        return replace(entry, id=int(cur.lastrowid))

    def clear_logs(self) -> None:
        with self._lock:
            self._connection().execute("DELETE FROM logs")

    # ---- read ---------------------------------------------------------------
    def _select(self, where: str, params: list, limit: int) -> List[LogEntry]:
        sql = f"SELECT * FROM logs{where} ORDER BY timestamp DESC, id DESC LIMIT ?"
        with self._lock:
            rows = self._connection().execute(sql, [*params, limit]).fetchall()
        return [LogEntry.from_row(r) for r in rows]

    def fetch_logs(self, limit: int = 100) -> List[LogEntry]:
        """Newest entries first."""
        return self._select("", [], limit)

    def query_logs(
        self,
        *,
        user_id: Optional[str] = None,
        feature: Optional[str] = None,
        event: Optional[str] = None,
        reference_id: Optional[str] = None,
        level: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 1_000,
    ) -> List[LogEntry]:
        """Entries matching every given filter, newest first."""
        clauses: List[str] = []
        params: list = []
        for column, value in (("user_id", user_id), ("feature", feature), ("event", event),
                              ("reference_id", reference_id), ("log_level", level)):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(str(value))
        if since is not None:
            clauses.append("timestamp >= ?")
            params.append(since.astimezone(timezone.utc).isoformat(timespec="microseconds"))
        where = " WHERE " + " AND ".join(clauses) if clauses else ""
        return self._select(where, params, limit)
