"""
core/common/db_interface.py
===========================

Shared base + helpers for SQLite-backed repositories.

Connections run in autocommit mode; writes are grouped explicitly with
:meth:`SQLiteRepository.transaction`, which opens ``BEGIN IMMEDIATE`` so the
write lock is held from the first read of a sign/reject transition until commit.
"""
from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from core.common.errors import TransportError


def create_sqlite_connection(
    db_path: Path,
    *,
    check_same_thread: bool = False,
    foreign_keys: bool = True,
) -> sqlite3.Connection:
    """Create a sqlite3 connection with common defaults."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=check_same_thread, isolation_level=None)
    conn.row_factory = sqlite3.Row
    if foreign_keys:
        conn.execute("PRAGMA foreign_keys = ON")
    return conn


class SQLiteRepository:
    """Default SQLite implementation with a shared, lazily opened connection."""

    def __init__(
        self,
        db_path: Path,
        *,
        check_same_thread: bool = False,
        foreign_keys: bool = True,
    ) -> None:
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._check_same_thread = check_same_thread
        self._foreign_keys = foreign_keys
        # sqlite3 connections are not safe for interleaved use across threads
        self._conn_lock = threading.RLock()
        self._tx_depth = 0

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def conn(self) -> sqlite3.Connection:
        return self.connect()

    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = create_sqlite_connection(
                self._db_path,
                check_same_thread=self._check_same_thread,
                foreign_keys=self._foreign_keys,
            )
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Exclusive write transaction. Nested use joins the outer transaction.
        Any exception rolls the whole unit back and is re-raised; a database
        that cannot be opened, locked or committed raises TransportError.
        """
        with self._conn_lock:
            if self._tx_depth:
                self._tx_depth += 1
                try:
                    yield self.connect()
                finally:
                    self._tx_depth -= 1
                return

            try:
                conn = self.connect()
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as ex:
                raise TransportError(f"Database {self._db_path.name} is unavailable: {ex}") from ex
            self._tx_depth = 1
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except sqlite3.OperationalError as ex:
                    conn.execute("ROLLBACK")
                    raise TransportError(f"Database {self._db_path.name} could not commit: {ex}") from ex
            finally:
                self._tx_depth = 0

    def close(self) -> None:
        with self._conn_lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                finally:
                    self._conn = None
