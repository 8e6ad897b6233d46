"""WorkflowController - approval transitions for the UI, with signature support."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from approvals.enum.document_status import DocumentStatus
from approvals.logic.redaction_renderer import RedactionRenderer
from approvals.logic.status_badges import document_badge, step_badge
from approvals.logic.workflow_service import WorkflowService
from approvals.models.workflow_models import Document, Step
from core.common.errors import AuthorizationError, WorkflowError
from core.models.user import Actor
from signature.models.signature_box import SignatureBox
from signature.models.signature_image import SignatureImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    message: str = ""
    new_status: Optional[DocumentStatus] = None
    kind: Optional[str] = None
    retryable: bool = False
    version: Optional[int] = None


def _failure(ex: WorkflowError) -> TransitionResult:
    return TransitionResult(success=False, message=ex.message, kind=ex.kind, retryable=ex.retryable)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class WorkflowController:
    """
    Thin layer between the dialogs and the WorkflowService.

    Services raise; here every WorkflowError becomes a failed TransitionResult
    carrying its kind, so callers can tell "reload and retry" apart from a
    denial or a correctable input.
    """

    def __init__(
        self,
        *,
        service: WorkflowService,
        current_user_provider: Callable[[], Optional[Actor]],
        renderer: Optional[RedactionRenderer] = None,
    ) -> None:
        self._service = service
        self._user_provider = current_user_provider
        self._renderer = renderer or RedactionRenderer()

    def _actor(self) -> Actor:
        actor = self._user_provider()
        if actor is None:
            raise AuthorizationError("No user is signed in.")
        return actor

    # ---- transitions --------------------------------------------------------
    def sign(
        self,
        doc_id: str,
        step_id: str,
        boxes: Sequence[SignatureBox],
        image: Optional[SignatureImage],
        *,
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        try:
            outcome = self._service.sign(doc_id, step_id, self._actor(), boxes, image,
                                         expected_version=expected_version)
        except WorkflowError as ex:
            logger.info("Sign on %s refused (%s): %s", doc_id, ex.kind, ex.message)
            return _failure(ex)
        doc = outcome.document
        message = "Document approved." if doc.status == DocumentStatus.APPROVED else "Step signed."
        if outcome.skipped_boxes:
            message += " Skipped: " + " ".join(outcome.skipped_boxes)
        return TransitionResult(success=True, message=message, new_status=doc.status, version=doc.version)

    def reject(self, doc_id: str, step_id: str, reason: str, *,
               expected_version: Optional[int] = None) -> TransitionResult:
        try:
            doc = self._service.reject(doc_id, step_id, self._actor(), reason, expected_version=expected_version)
        except WorkflowError as ex:
            logger.info("Reject on %s refused (%s): %s", doc_id, ex.kind, ex.message)
            return _failure(ex)
        return TransitionResult(success=True, message="Document rejected.", new_status=doc.status,
                                version=doc.version)

    def update_note(self, doc_id: str, step_id: str, note: str) -> TransitionResult:
        try:
            doc = self._service.update_note(doc_id, step_id, self._actor(), note)
        except WorkflowError as ex:
            return _failure(ex)
        return TransitionResult(success=True, message="Note saved.", new_status=doc.status, version=doc.version)

    def submit(self, doc_type: str, title: str, artifact: bytes, *,
               department: Optional[str] = None, filename: Optional[str] = None) -> TransitionResult:
        try:
            doc = self._service.submit(doc_type, title, self._actor(), artifact,
                                       department=department, filename=filename)
        except WorkflowError as ex:
            return _failure(ex)
        return TransitionResult(success=True, message=doc.id, new_status=doc.status, version=doc.version)

    # ---- reads --------------------------------------------------------------
    def get_document(self, doc_id: str) -> Optional[Document]:
        try:
            return self._service.get(doc_id)
        except WorkflowError:
            return None

    def document_payload(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Document plus workflow list, JSON-ready."""
        doc = self.get_document(doc_id)
        if doc is None:
            return None
        actor = self._user_provider()
        badge = document_badge(doc.status)
        return {
            "id": doc.id,
            "doc_type": doc.doc_type.value,
            "title": doc.title,
            "department": doc.department,
            "submitted_by": doc.submitted_by,
            "file_path": doc.file_path,
            "status": doc.status.value,
            "status_label": badge.label,
            "status_class": badge.css_class,
            "current_step": doc.current_step_order,
            "version": doc.version,
            "created_at": _iso(doc.created_at),
            "updated_at": _iso(doc.updated_at),
            "can_act": self._service.can_act(doc, actor),
            "workflow": [self._step_payload(s) for s in doc.steps],
            "redactions": [
                {"box": box.to_dict(), "text": text} for box, text in self._renderer.committed(doc)
            ],
        }

    @staticmethod
    def _step_payload(step: Step) -> Dict[str, Any]:
        badge = step_badge(step.status)
        return {
            "id": step.id,
            "order": step.order,
            "name": step.name,
            "assignee_id": step.assignee_id,
            "assignee_name": step.assignee_name,
            "status": step.status.value,
            "status_label": badge.label,
            "status_icon": badge.icon,
            "status_class": badge.css_class,
            "note": step.note,
            "signed_at": _iso(step.signed_at),
            "acted_at": _iso(step.acted_at),
            "signature_map": [b.to_dict() for b in step.signature_map],
        }

    def pending_documents(self) -> List[Document]:
        actor = self._user_provider()
        return self._service.pending_for(actor) if actor else []
