"""Pure transition rules: no storage involved."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from approvals.enum.document_status import DocumentStatus
from approvals.enum.document_type import DocumentType
from approvals.enum.step_status import StepStatus
from approvals.logic.workflow_engine import WorkflowEngine
from approvals.models.workflow_models import Document, Step
from core.common.errors import AuthorizationError, ValidationError
from core.models.user import Actor
from signature.models.signature_box import SignatureBox

NOW = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
U1 = Actor(id="u1", position="Dean")
U2 = Actor(id="u2", position="EVP")
U3 = Actor(id="u3", position="VPAA")
BOX = SignatureBox(id="b1", page=1, x_pct=0.1, y_pct=0.1, w_pct=0.2, h_pct=0.05)

engine = WorkflowEngine()


def _doc(n: int = 3) -> Document:
    names = [("Dean", "u1", None), ("EVP", "u2", None), ("VPAA", "u3", None)][:n]
    return Document(
        id="d1", doc_type=DocumentType.PROPOSAL, title="T", file_path="doc_d1.pdf",
        submitted_by="s1", steps=engine.build_steps(names),
    )


def test_build_steps_first_pending_rest_queued() -> None:
    doc = _doc()
    assert [s.order for s in doc.steps] == [1, 2, 3]
    assert [s.status for s in doc.steps] == [StepStatus.PENDING, StepStatus.QUEUED, StepStatus.QUEUED]
    assert doc.status == DocumentStatus.SUBMITTED


def test_build_steps_without_positions_fails() -> None:
    with pytest.raises(ValidationError):
        engine.build_steps([])


def test_sign_advances_exactly_one_step() -> None:
    doc = _doc()
    step = doc.pending_step
    signed = engine.apply_sign(doc, step.id, U1, [BOX], now=NOW, file_path="signed.pdf")

    assert signed.current_step_order == doc.current_step_order + 1
    assert signed.status == DocumentStatus.IN_REVIEW
    assert signed.steps[0].status == StepStatus.COMPLETED
    assert signed.steps[0].signed_at == NOW
    assert signed.steps[0].signature_map == (BOX,)
    assert signed.steps[1].status == StepStatus.PENDING
    assert signed.steps[2].status == StepStatus.QUEUED
    assert signed.file_path == "signed.pdf"
    # input untouched
    assert doc.steps[0].status == StepStatus.PENDING


def test_signing_last_step_approves() -> None:
    doc = _doc(2)
    doc = engine.apply_sign(doc, doc.steps[0].id, U1, [BOX], now=NOW)
    doc = engine.apply_sign(doc, doc.steps[1].id, U2, [BOX], now=NOW)
    assert doc.status == DocumentStatus.APPROVED
    assert doc.pending_step is None
    assert doc.current_step_order == 3


def test_non_assignee_is_refused() -> None:
    doc = _doc()
    with pytest.raises(AuthorizationError):
        engine.apply_sign(doc, doc.steps[0].id, U2, [BOX], now=NOW)


def test_acting_on_queued_step_is_refused_even_for_its_assignee() -> None:
    doc = _doc()
    with pytest.raises(AuthorizationError) as exc:
        engine.apply_sign(doc, doc.steps[1].id, U2, [BOX], now=NOW)
    assert "queued" in exc.value.message


def test_sign_without_boxes_is_a_validation_error() -> None:
    doc = _doc()
    with pytest.raises(ValidationError):
        engine.apply_sign(doc, doc.steps[0].id, U1, [], now=NOW)


def test_reject_requires_reason_and_halts_sequence() -> None:
    doc = _doc()
    with pytest.raises(ValidationError):
        engine.apply_reject(doc, doc.steps[0].id, U1, "   ", now=NOW)

    rejected = engine.apply_reject(doc, doc.steps[0].id, U1, " insufficient detail ", now=NOW)
    assert rejected.status == DocumentStatus.REJECTED
    assert rejected.steps[0].note == "insufficient detail"
    assert rejected.steps[0].signed_at is None
    assert all(s.status == StepStatus.QUEUED for s in rejected.steps[1:])
    assert rejected.current_step_order == doc.current_step_order

    for step in rejected.steps:
        with pytest.raises(AuthorizationError):
            engine.apply_sign(rejected, step.id, Actor(id=step.assignee_id), [BOX], now=NOW)


def test_unknown_step_and_missing_actor() -> None:
    doc = _doc()
    with pytest.raises(AuthorizationError):
        engine.authorize(doc, "nope", U1)
    with pytest.raises(AuthorizationError):
        engine.authorize(doc, doc.steps[0].id, None)


def test_can_act_is_a_hint_for_the_assignee_only() -> None:
    doc = _doc()
    assert engine.can_act(doc, U1)
    assert not engine.can_act(doc, U3)
    assert not engine.can_act(doc, None)


def test_timeout_appends_to_existing_note() -> None:
    doc = _doc()
    doc = engine.apply_note(doc, doc.steps[0].id, U1, "checking budget", now=NOW)
    expired = engine.apply_timeout(doc, 7, now=NOW)
    assert expired.status == DocumentStatus.REJECTED
    assert expired.steps[0].note == "checking budget [Auto-timeout after 7 days]"


def test_document_rejects_broken_step_sequences() -> None:
    s1 = Step(id="a", order=1, name="A", assignee_id="u1", status=StepStatus.PENDING)
    s2 = Step(id="b", order=2, name="B", assignee_id="u2", status=StepStatus.PENDING)
    gap = Step(id="c", order=3, name="C", assignee_id="u3")
    common = dict(id="d", doc_type=DocumentType.SAF, title="T", file_path="x.pdf", submitted_by="s")
    with pytest.raises(ValidationError):
        Document(steps=(), **common)
    with pytest.raises(ValidationError):
        Document(steps=(s1, s2), **common)
    with pytest.raises(ValidationError):
        Document(steps=(s1, gap), **common)
