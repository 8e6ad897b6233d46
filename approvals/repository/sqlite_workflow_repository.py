"""SQLite persistence for approval documents and their steps.

Lightweight repository - CRUD plus the few queries the services need.
Rules live in the engine, orchestration in the service.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from approvals.enum.document_status import DocumentStatus
from approvals.enum.document_type import DocumentType
from approvals.enum.step_status import StepStatus
from approvals.models.workflow_models import Document, Step
from core.common.db_interface import SQLiteRepository
from core.common.errors import ConflictError
from signature.logic.signature_map import parse_signature_map, serialize_signature_map

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    doc_type TEXT NOT NULL,
    title TEXT NOT NULL,
    department TEXT,
    submitted_by TEXT NOT NULL,
    file_path TEXT NOT NULL,
    status TEXT NOT NULL,
    current_step_order INTEGER NOT NULL,
    version INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS steps (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    step_order INTEGER NOT NULL,
    name TEXT NOT NULL,
    assignee_id TEXT NOT NULL,
    assignee_name TEXT,
    status TEXT NOT NULL,
    note TEXT NOT NULL DEFAULT '',
    signed_at TEXT,
    acted_at TEXT,
    signature_map TEXT,
    UNIQUE (document_id, step_order)
);
CREATE INDEX IF NOT EXISTS idx_steps_assignee ON steps(assignee_id, status);
CREATE INDEX IF NOT EXISTS idx_documents_status ON documents(status);
"""


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class SQLiteWorkflowRepository(SQLiteRepository):
    """SQLite backend for approval documents."""

    def __init__(self, db_path: Path) -> None:
        super().__init__(db_path)
        self._ensure_schema()

    # =========================================================================
    # Schema
    # =========================================================================
    def _ensure_schema(self) -> None:
        with self._conn_lock:
            self.conn.executescript(_SCHEMA)

    # =========================================================================
    # Mapping
    # =========================================================================
    @staticmethod
    def _row_to_step(row: sqlite3.Row) -> Step:
        return Step(
            id=row["id"],
            order=int(row["step_order"]),
            name=row["name"],
            assignee_id=row["assignee_id"],
            assignee_name=row["assignee_name"],
            status=StepStatus(row["status"]),
            note=row["note"] or "",
            signed_at=_dt(row["signed_at"]),
            acted_at=_dt(row["acted_at"]),
            # legacy shapes are normalized here and nowhere else
            signature_map=tuple(parse_signature_map(row["signature_map"])),
        )

    def _load(self, row: sqlite3.Row) -> Document:
        step_rows = self.conn.execute(
            "SELECT * FROM steps WHERE document_id = ? ORDER BY step_order", (row["id"],)
        ).fetchall()
        return Document(
            id=row["id"],
            doc_type=DocumentType(row["doc_type"]),
            title=row["title"],
            department=row["department"],
            submitted_by=row["submitted_by"],
            file_path=row["file_path"],
            steps=tuple(self._row_to_step(r) for r in step_rows),
            current_step_order=int(row["current_step_order"]),
            version=int(row["version"]),
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )

    @staticmethod
    def _step_params(doc_id: str, s: Step) -> tuple:
        return (
            s.id, doc_id, s.order, s.name, s.assignee_id, s.assignee_name, s.status.value, s.note,
            _ts(s.signed_at), _ts(s.acted_at),
            serialize_signature_map(s.signature_map) if s.signature_map else None,
        )

    # =========================================================================
    # CRUD
    # =========================================================================
    def insert(self, doc: Document) -> Document:
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO documents (id, doc_type, title, department, submitted_by, file_path, status,
                                          current_step_order, version, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (doc.id, doc.doc_type.value, doc.title, doc.department, doc.submitted_by, doc.file_path,
                 doc.status.value, doc.current_step_order, doc.version,
                 _ts(doc.created_at), _ts(doc.updated_at)),
            )
            conn.executemany(
                """INSERT INTO steps (id, document_id, step_order, name, assignee_id, assignee_name, status,
                                      note, signed_at, acted_at, signature_map)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [self._step_params(doc.id, s) for s in doc.steps],
            )
        logger.debug("Inserted document %s with %d steps", doc.id, len(doc.steps))
        return doc

    def get(self, doc_id: str) -> Optional[Document]:
        with self._conn_lock:
            row = self.conn.execute("SELECT * FROM documents WHERE id = ?", (doc_id,)).fetchone()
            return self._load(row) if row else None

    def save(self, doc: Document, *, expected_version: int) -> Document:
        """
        Write document and step state. Fails with ConflictError when the stored
        version is no longer ``expected_version``. Returns the document with
        its new version.
        """
        new_version = expected_version + 1
        with self.transaction() as conn:
            cur = conn.execute(
                """UPDATE documents
                      SET file_path = ?, status = ?, current_step_order = ?, version = ?, updated_at = ?
                    WHERE id = ? AND version = ?""",
                (doc.file_path, doc.status.value, doc.current_step_order, new_version,
                 _ts(doc.updated_at), doc.id, expected_version),
            )
            if cur.rowcount != 1:
                raise ConflictError(f"Document {doc.id} was changed by someone else. Reload and retry.")
            conn.executemany(
                """UPDATE steps
                      SET status = ?, note = ?, signed_at = ?, acted_at = ?, signature_map = ?
                    WHERE id = ? AND document_id = ?""",
                [
                    (s.status.value, s.note, _ts(s.signed_at), _ts(s.acted_at),
                     serialize_signature_map(s.signature_map) if s.signature_map else None,
                     s.id, doc.id)
                    for s in doc.steps
                ],
            )
        return self._with_version(doc, new_version)

    @staticmethod
    def _with_version(doc: Document, version: int) -> Document:
        return replace(doc, version=version)

    # =========================================================================
    # Queries
    # =========================================================================
    def _documents(self, sql: str, params: Iterable = ()) -> List[Document]:
        with self._conn_lock:
            rows = self.conn.execute(sql, tuple(params)).fetchall()
            return [self._load(r) for r in rows]

    def list_documents(self, *, status: Optional[DocumentStatus] = None,
                       submitted_by: Optional[str] = None) -> List[Document]:
        sql = "SELECT * FROM documents WHERE 1=1"
        params: list = []
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        if submitted_by is not None:
            sql += " AND submitted_by = ?"
            params.append(submitted_by)
        return self._documents(sql + " ORDER BY created_at DESC", params)

    def list_pending_for(self, assignee_id: str) -> List[Document]:
        return self._documents(
            """SELECT d.* FROM documents d
                 JOIN steps s ON s.document_id = d.id
                WHERE s.assignee_id = ? AND s.status = ?
                ORDER BY d.created_at""",
            (assignee_id, StepStatus.PENDING.value),
        )

    def list_open_created_before(self, cutoff: datetime) -> List[str]:
        """Ids of submitted/in-review documents created before ``cutoff``."""
        with self._conn_lock:
            rows = self.conn.execute(
                "SELECT id FROM documents WHERE status IN (?, ?) AND created_at <= ? ORDER BY created_at",
                (DocumentStatus.SUBMITTED.value, DocumentStatus.IN_REVIEW.value, _ts(cutoff)),
            ).fetchall()
        return [r["id"] for r in rows]
