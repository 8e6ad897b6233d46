# approvals/logic/workflow_service.py
from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple
from uuid import uuid4

from approvals.adapters.artifact_store import FilesystemArtifactStore, OLD_SUFFIX, REJECTED_SUFFIX
from approvals.adapters.notification_sink import Notification, NotificationSink, notify_safely
from approvals.dto.audit_event import AuditAction, AuditEvent
from approvals.enum.document_status import DocumentStatus
from approvals.enum.document_type import DocumentType
from approvals.logic.step_templates import AssigneeDirectory, resolve_positions
from approvals.logic.workflow_engine import WorkflowEngine
from approvals.models.workflow_models import Document, utcnow
from approvals.repository.sqlite_workflow_repository import SQLiteWorkflowRepository
from approvals.services.audit_service import AuditService, severity_for
from core.common.errors import ArtifactError, ConflictError, ValidationError
from core.models.user import Actor
from signature.logic.geometry import validate_boxes
from signature.logic.pdf_signer import PdfSigner, page_count
from signature.models.signature_box import SignatureBox
from signature.models.signature_image import SignatureImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignOutcome:
    document: Document
    # messages for boxes that were dropped as invalid
    skipped_boxes: Tuple[str, ...] = ()


class WorkflowService:
    """
    Orchestrates approval transitions.

    Sign holds a per-document lock and one database transaction across
    "read artifact -> embed -> write artifact -> advance step". The new
    artifact is deleted again if anything after it fails; the superseded one
    is archived only after commit. Notifications and audit entries are sent
    after commit and never block the transition.
    """

    def __init__(
        self,
        *,
        repository: SQLiteWorkflowRepository,
        artifacts: FilesystemArtifactStore,
        directory: Optional[AssigneeDirectory] = None,
        notifier: Optional[NotificationSink] = None,
        audit: Optional[AuditService] = None,
        signer: Optional[PdfSigner] = None,
        engine: Optional[WorkflowEngine] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repository
        self._artifacts = artifacts
        self._directory = directory
        self._notifier = notifier
        self._audit = audit
        self._signer = signer or PdfSigner()
        self._engine = engine or WorkflowEngine()
        self._clock = clock
        # an entry lives only while some caller holds its lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ---- helpers ------------------------------------------------------------
    def _lock_for(self, doc_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(doc_id)
            if lock is None:
                lock = self._locks[doc_id] = threading.Lock()
            return lock

    def _load(self, doc_id: str) -> Document:
        doc = self._repo.get(doc_id)
        if doc is None:
            raise ValidationError(f"Document {doc_id} not found.", field="document_id")
        return doc

    @staticmethod
    def _check_version(doc: Document, expected_version: Optional[int]) -> None:
        if expected_version is not None and doc.version != expected_version:
            raise ConflictError(f"Document {doc.id} changed since it was loaded. Reload and retry.")

    def _record(self, action: AuditAction, actor: Actor, doc: Document, *,
                step_order: Optional[int] = None, reason: Optional[str] = None,
                error: Optional[str] = None, **metadata) -> None:
        if self._audit is None:
            return
        self._audit.record(AuditEvent(
            event_type=action,
            occurred_at=self._clock(),
            actor_id=actor.id,
            actor_name=actor.display_name,
            doc_id=doc.id,
            doc_status=doc.status.value,
            step_order=step_order,
            reason=reason,
            error_message=error,
            metadata=metadata,
            severity=severity_for(action),
        ))

    def _notify(self, recipient_id: str, doc: Document, kind: str, message: str) -> None:
        notify_safely(self._notifier, Notification(
            recipient_id=recipient_id, document_id=doc.id, kind=kind, message=message,
        ))

    # ---- queries ------------------------------------------------------------
    def get(self, doc_id: str) -> Document:
        return self._load(doc_id)

    def pending_for(self, actor: Actor) -> List[Document]:
        return self._repo.list_pending_for(actor.id)

    def can_act(self, doc: Document, actor: Optional[Actor]) -> bool:
        return self._engine.can_act(doc, actor)

    def read_artifact(self, doc: Document) -> bytes:
        return self._artifacts.read(doc.file_path)

    # ---- submission ---------------------------------------------------------
    def submit(
        self,
        doc_type: DocumentType | str,
        title: str,
        submitted_by: Actor,
        artifact: bytes,
        *,
        department: Optional[str] = None,
        filename: Optional[str] = None,
        positions: Optional[Sequence[Tuple[str, str, Optional[str]]]] = None,
    ) -> Document:
        """
        Create a document with its step sequence.

        The sequence comes from the type template resolved against the
        assignee directory, unless explicit ``positions``
        (name, assignee_id, assignee_name) are given.
        """
        try:
            dtype = DocumentType.parse(doc_type)
        except ValueError as ex:
            raise ValidationError(str(ex), field="doc_type") from ex
        if not (title or "").strip():
            raise ValidationError("A title is required.", field="title")
        department = department or submitted_by.department
        if positions is None:
            if self._directory is None:
                raise ValidationError("No assignee directory is configured.", field="steps")
            positions = resolve_positions(dtype, self._directory, department=department)

        page_count(artifact)  # reject unreadable uploads up front
        steps = self._engine.build_steps(positions)

        doc_id = uuid4().hex[:12]
        path = self._artifacts.store_original(doc_id, artifact, filename)
        now = self._clock()
        doc = Document(
            id=doc_id,
            doc_type=dtype,
            title=title.strip(),
            department=department,
            submitted_by=submitted_by.id,
            file_path=path,
            steps=steps,
            created_at=now,
            updated_at=now,
        )
        try:
            self._repo.insert(doc)
        except BaseException:
            self._artifacts.discard(path)
            raise

        logger.info("Document %s (%s) submitted by %s with %d steps", doc.id, dtype.value,
                    submitted_by.id, len(steps))
        self._record(AuditAction.DOCUMENT_SUBMITTED, submitted_by, doc, title=doc.title)
        first = doc.steps[0]
        self._notify(first.assignee_id, doc, "approval_requested",
                     f"'{doc.title}' is waiting for your approval as {first.name}.")
        return doc

    # ---- sign ---------------------------------------------------------------
    def sign(
        self,
        doc_id: str,
        step_id: str,
        actor: Actor,
        boxes: Sequence[SignatureBox],
        image: Optional[SignatureImage],
        *,
        expected_version: Optional[int] = None,
    ) -> SignOutcome:
        with self._lock_for(doc_id):
            new_path: Optional[str] = None
            doc: Optional[Document] = None
            try:
                with self._repo.transaction():
                    doc = self._load(doc_id)
                    self._check_version(doc, expected_version)
                    step = self._engine.authorize(doc, step_id, actor)
                    if image is None:
                        raise ValidationError("No signature content. Capture a signature first.",
                                              field="signature")

                    source = self._artifacts.read(doc.file_path)
                    checked = validate_boxes(boxes, page_count(source))
                    signed = self._signer.embed(source, checked.valid, image.png)
                    new_path = self._artifacts.write_signed(doc.id, step.order, signed)

                    updated = self._engine.apply_sign(
                        doc, step_id, actor, checked.valid, now=self._clock(), file_path=new_path,
                    )
                    saved = self._repo.save(updated, expected_version=doc.version)
            except BaseException as ex:
                if new_path is not None:
                    self._artifacts.discard(new_path)
                if isinstance(ex, ArtifactError) and doc is not None:
                    logger.warning("Signing %s failed, rolled back: %s", doc_id, ex)
                    self._record(AuditAction.SIGN_FAILED, actor, doc, error=ex.message)
                raise

        if doc.file_path != saved.file_path:
            try:
                self._artifacts.archive(doc.file_path, OLD_SUFFIX)
            except ArtifactError:
                logger.exception("Superseded artifact of %s could not be archived", doc_id)

        self._after_sign(actor, step, saved, checked.valid)
        return SignOutcome(document=saved, skipped_boxes=tuple(checked.messages))

    def _after_sign(self, actor: Actor, step, doc: Document, boxes: Sequence[SignatureBox]) -> None:
        logger.info("Step %d of %s signed by %s (%d box(es)); status %s",
                    step.order, doc.id, actor.id, len(boxes), doc.status.value)
        self._record(AuditAction.DOCUMENT_SIGNED, actor, doc, step_order=step.order,
                     boxes=[b.to_dict() for b in boxes])
        if doc.status == DocumentStatus.APPROVED:
            self._record(AuditAction.DOCUMENT_APPROVED, actor, doc, step_order=step.order)
            self._notify(doc.submitted_by, doc, "approved", f"'{doc.title}' has been fully approved.")
            return
        nxt = doc.pending_step
        if nxt is not None:
            self._notify(nxt.assignee_id, doc, "approval_requested",
                         f"'{doc.title}' is waiting for your approval as {nxt.name}.")

    # ---- reject -------------------------------------------------------------
    def reject(
        self,
        doc_id: str,
        step_id: str,
        actor: Actor,
        reason: str,
        *,
        expected_version: Optional[int] = None,
    ) -> Document:
        with self._lock_for(doc_id):
            with self._repo.transaction():
                doc = self._load(doc_id)
                self._check_version(doc, expected_version)
                updated = self._engine.apply_reject(doc, step_id, actor, reason, now=self._clock())
                saved = self._repo.save(updated, expected_version=doc.version)

        step = saved.step(step_id)
        try:
            self._artifacts.archive_copy(saved.file_path, REJECTED_SUFFIX)
        except ArtifactError:
            logger.exception("Rejected artifact of %s could not be archived", doc_id)

        logger.info("Step %d of %s rejected by %s", step.order, doc_id, actor.id)
        self._record(AuditAction.DOCUMENT_REJECTED, actor, saved, step_order=step.order, reason=step.note)
        self._notify(saved.submitted_by, saved, "rejected",
                     f"'{saved.title}' was rejected by {step.name}: {step.note}")
        return saved

    # ---- note ---------------------------------------------------------------
    def update_note(self, doc_id: str, step_id: str, actor: Actor, note: str) -> Document:
        """Assignee of the pending step may leave or change a note (comment)."""
        with self._lock_for(doc_id):
            with self._repo.transaction():
                doc = self._load(doc_id)
                updated = self._engine.apply_note(doc, step_id, actor, note, now=self._clock())
                saved = self._repo.save(updated, expected_version=doc.version)
        step = saved.step(step_id)
        self._record(AuditAction.NOTE_UPDATED, actor, saved, step_order=step.order, reason=step.note)
        return saved

    # ---- timeout ------------------------------------------------------------
    def expire(self, doc_id: str, actor: Actor, days: int) -> Optional[Document]:
        """Reject the pending step of a stale document. None when nothing was open."""
        with self._lock_for(doc_id):
            with self._repo.transaction():
                doc = self._load(doc_id)
                step = doc.pending_step
                if step is None or doc.status.is_terminal:
                    return None
                updated = self._engine.apply_timeout(doc, days, now=self._clock())
                saved = self._repo.save(updated, expected_version=doc.version)

        note = saved.step(step.id).note
        self._record(AuditAction.DOCUMENT_TIMEOUT, actor, saved, step_order=step.order, reason=note)
        self._notify(saved.submitted_by, saved, "rejected",
                     f"'{saved.title}' was rejected automatically after {days} days without a decision.")
        return saved
