"""SQLite persistence: optimistic versions, queries and legacy signature maps."""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from approvals.enum.document_status import DocumentStatus
from approvals.enum.document_type import DocumentType
from approvals.logic.workflow_engine import WorkflowEngine
from approvals.models.workflow_models import Document
from approvals.repository.sqlite_workflow_repository import SQLiteWorkflowRepository
from core.common.errors import ConflictError
from core.models.user import Actor
from signature.models.signature_box import SignatureBox

T0 = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
BOX = SignatureBox(id="b1", page=1, x_pct=0.1, y_pct=0.1, w_pct=0.2, h_pct=0.05)


@pytest.fixture
def repo(tmp_path):
    r = SQLiteWorkflowRepository(tmp_path / "wf.db")
    yield r
    r.close()


def _doc(doc_id: str, *, created: datetime = T0, submitted_by: str = "s1") -> Document:
    return Document(
        id=doc_id, doc_type=DocumentType.SAF, title=f"Doc {doc_id}", file_path=f"doc_{doc_id}.pdf",
        submitted_by=submitted_by, department="CCS",
        steps=WorkflowEngine.build_steps([("Dean", "u1", "Una One"), ("EVP", "u2", None)]),
        created_at=created, updated_at=created,
    )


def test_insert_and_get_round_trip(repo) -> None:
    doc = repo.insert(_doc("d1"))
    assert repo.get("d1") == doc
    assert repo.get("nope") is None


def test_save_bumps_version_and_detects_stale_writes(repo) -> None:
    doc = repo.insert(_doc("d1"))
    signed = WorkflowEngine().apply_sign(doc, doc.steps[0].id, Actor(id="u1"), [BOX], now=T0)

    saved = repo.save(signed, expected_version=1)
    assert saved.version == 2
    stored = repo.get("d1")
    assert stored.version == 2
    assert stored.status == DocumentStatus.IN_REVIEW
    assert stored.steps[0].signature_map == (BOX,)

    with pytest.raises(ConflictError):
        repo.save(signed, expected_version=1)
    assert repo.get("d1").version == 2


def test_pending_and_stale_queries(repo) -> None:
    repo.insert(_doc("old", created=T0 - timedelta(days=10)))
    repo.insert(_doc("new", created=T0, submitted_by="s2"))

    assert [d.id for d in repo.list_pending_for("u1")] == ["old", "new"]
    assert repo.list_pending_for("u2") == []
    assert [d.id for d in repo.list_documents(submitted_by="s2")] == ["new"]
    assert repo.list_open_created_before(T0 - timedelta(days=7)) == ["old"]


def test_legacy_signature_maps_are_read_as_lists(repo) -> None:
    doc = repo.insert(_doc("d1"))
    legacy = {
        "accounting": {"page": 1, "x_pct": 0.65, "y_pct": 0.25, "w_pct": 0.2, "h_pct": 0.08},
        "issuer": {"id": "iss", "page": 2, "x_pct": 0.65, "y_pct": 0.37, "w_pct": 0.2, "h_pct": 0.08},
    }
    with repo.transaction() as conn:
        conn.execute("UPDATE steps SET signature_map = ? WHERE id = ?", (json.dumps(legacy), doc.steps[0].id))
        conn.execute(
            "UPDATE steps SET signature_map = ? WHERE id = ?",
            (json.dumps({"x_pct": 0.1, "y_pct": 0.1, "w_pct": 0.2, "h_pct": 0.05}), doc.steps[1].id),
        )

    stored = repo.get("d1")
    first = stored.steps[0].signature_map
    assert [(b.page, b.y_pct) for b in first] == [(1, 0.25), (2, 0.37)]
    assert first[1].id == "iss"
    assert first[0].id
    single = stored.steps[1].signature_map
    assert len(single) == 1
    assert single[0].page == 1
