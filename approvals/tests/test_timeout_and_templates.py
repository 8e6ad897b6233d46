"""Automatic timeout sweep and template-driven step sequences."""
from __future__ import annotations

import pytest

from approvals.dto.audit_event import AuditAction
from approvals.enum.document_status import DocumentStatus
from approvals.enum.document_type import DocumentType
from approvals.enum.step_status import StepStatus
from approvals.logic.step_templates import InMemoryAssigneeDirectory, resolve_positions, template_for
from approvals.logic.timeout_service import TimeoutService
from approvals.logic.workflow_service import WorkflowService
from core.common.errors import ValidationError
from core.models.user import Actor, UserRole
from signature.models.signature_box import SignatureBox
from signature.models.signature_image import SignatureImage

SUBMITTER = Actor(id="s1", role=UserRole.STUDENT, position="Student", department="CCS")
U1 = Actor(id="u1", position="Dean", full_name="Una One")
BOX = SignatureBox(id="b1", page=1, x_pct=0.1, y_pct=0.1, w_pct=0.2, h_pct=0.05)


def _timeouts(env, days: int = 7) -> TimeoutService:
    return TimeoutService(service=env.service, repository=env.repository, timeout_days=days, clock=env.clock)


# ---- timeout -------------------------------------------------------------------
def test_documents_younger_than_the_limit_are_left_alone(workflow_env) -> None:
    doc = workflow_env.submit_two_steps(SUBMITTER)
    workflow_env.clock.advance(days=6, hours=23)
    assert _timeouts(workflow_env).enforce() == []
    assert workflow_env.repository.get(doc.id).status == DocumentStatus.SUBMITTED


def test_stale_document_is_rejected_on_its_pending_step(workflow_env, signature_png) -> None:
    doc = workflow_env.submit_two_steps(SUBMITTER)
    image = SignatureImage(png=signature_png, width=120, height=40)
    workflow_env.service.sign(doc.id, doc.steps[0].id, U1, [BOX], image)
    workflow_env.clock.advance(days=7)

    expired = _timeouts(workflow_env).enforce()

    assert [d.id for d in expired] == [doc.id]
    stored = workflow_env.repository.get(doc.id)
    assert stored.status == DocumentStatus.REJECTED
    assert stored.steps[0].status == StepStatus.COMPLETED
    assert stored.steps[1].status == StepStatus.REJECTED
    assert stored.steps[1].note == "[Auto-timeout after 7 days]"
    assert workflow_env.audit.events(doc.id, AuditAction.DOCUMENT_TIMEOUT)
    assert [n.kind for n in workflow_env.notifier.for_recipient("s1")] == ["rejected"]

    # a second sweep finds nothing open
    assert _timeouts(workflow_env).enforce() == []


def test_finished_documents_are_never_expired(workflow_env) -> None:
    doc = workflow_env.submit_two_steps(SUBMITTER)
    workflow_env.service.reject(doc.id, doc.steps[0].id, Actor(id="u1"), "wrong form")
    workflow_env.clock.advance(days=30)
    assert _timeouts(workflow_env).enforce() == []


def test_zero_days_disables_the_sweep(workflow_env) -> None:
    workflow_env.submit_two_steps(SUBMITTER)
    workflow_env.clock.advance(days=365)
    sweep = _timeouts(workflow_env, days=0)
    assert not sweep.enabled
    assert sweep.enforce() == []


# ---- templates -----------------------------------------------------------------
@pytest.fixture
def directory() -> InMemoryAssigneeDirectory:
    return InMemoryAssigneeDirectory([
        Actor(id="dean-cba", position="Dean", department="CBA", full_name="Dean Other"),
        Actor(id="dean-ccs", position="Dean", department="CCS", full_name="Dean Ccs"),
        Actor(id="osa", position="OIC OSA", full_name="Osa Officer"),
        Actor(id="vpaa", position="VPAA"),
        Actor(id="ssc", position="SSC President", role=UserRole.STUDENT),
        # same position, wrong role
        Actor(id="ssc-staff", position="SSC President"),
    ])


def test_saf_template_resolves_department_dean_and_skips_vacancies(directory) -> None:
    positions = resolve_positions(DocumentType.SAF, directory, department="CCS")
    # EVP is vacant
    assert positions == [
        ("Dean", "dean-ccs", "Dean Ccs"),
        ("OIC OSA", "osa", "Osa Officer"),
        ("VPAA", "vpaa", None),
    ]


def test_student_position_requires_student_role(directory) -> None:
    positions = resolve_positions(DocumentType.PROPOSAL, directory, department="CCS")
    assert ("SSC President", "ssc", None) in positions
    assert all(assignee != "ssc-staff" for _, assignee, _ in positions)


def test_material_goes_to_osa_only() -> None:
    assert [t.position for t in template_for(DocumentType.MATERIAL)] == ["OIC OSA"]


def test_submit_uses_template_and_submitter_department(workflow_env, directory, pdf_factory) -> None:
    service = WorkflowService(
        repository=workflow_env.repository,
        artifacts=workflow_env.artifacts,
        directory=directory,
        notifier=workflow_env.notifier,
        clock=workflow_env.clock,
    )
    doc = service.submit(DocumentType.SAF, "Seminar fees", SUBMITTER, pdf_factory(), filename="fees form.pdf")

    assert doc.department == "CCS"
    assert [(s.name, s.assignee_id) for s in doc.steps] == [
        ("Dean", "dean-ccs"), ("OIC OSA", "osa"), ("VPAA", "vpaa"),
    ]
    assert doc.file_path == f"doc_{doc.id}_fees_form.pdf"


def test_submit_fails_when_nobody_can_approve(workflow_env, pdf_factory) -> None:
    service = WorkflowService(
        repository=workflow_env.repository,
        artifacts=workflow_env.artifacts,
        directory=InMemoryAssigneeDirectory(),
        clock=workflow_env.clock,
    )
    with pytest.raises(ValidationError):
        service.submit("material", "Poster", SUBMITTER, pdf_factory())
    assert workflow_env.repository.list_documents() == []
