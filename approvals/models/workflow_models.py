"""Domain models for the approval workflow."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple

from approvals.enum.document_status import DocumentStatus
from approvals.enum.document_type import DocumentType
from approvals.enum.step_status import StepStatus
from core.common.errors import ValidationError
from signature.models.signature_box import SignatureBox


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Step:
    """
    One approval stage.

    ``name`` is the position the step belongs to (e.g. "Dean"). ``signed_at``
    is only set on completion; ``acted_at`` records completion and rejection.
    ``signature_map`` is the snapshot of boxes taken at signing time.
    """
    id: str
    order: int
    name: str
    assignee_id: str
    status: StepStatus = StepStatus.QUEUED
    assignee_name: Optional[str] = None
    note: str = ""
    signed_at: Optional[datetime] = None
    acted_at: Optional[datetime] = None
    signature_map: Tuple[SignatureBox, ...] = ()


@dataclass(frozen=True)
class Document:
    """
    Submitted document with its ordered, fixed step sequence.

    ``status`` is derived from the steps. ``version`` is bumped by the
    repository on every successful save.
    """
    id: str
    doc_type: DocumentType
    title: str
    file_path: str
    submitted_by: str
    steps: Tuple[Step, ...]
    department: Optional[str] = None
    current_step_order: int = 1
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValidationError(f"Document {self.id} has no approval steps.", field="steps")
        orders = [s.order for s in self.steps]
        if orders != list(range(1, len(orders) + 1)):
            raise ValidationError(f"Document {self.id} has non-contiguous step orders {orders}.", field="steps")
        if sum(1 for s in self.steps if s.status == StepStatus.PENDING) > 1:
            raise ValidationError(f"Document {self.id} has more than one pending step.", field="steps")

    @property
    def status(self) -> DocumentStatus:
        if any(s.status == StepStatus.REJECTED for s in self.steps):
            return DocumentStatus.REJECTED
        if self.steps[-1].status == StepStatus.COMPLETED:
            return DocumentStatus.APPROVED
        if any(s.status == StepStatus.COMPLETED for s in self.steps):
            return DocumentStatus.IN_REVIEW
        return DocumentStatus.SUBMITTED

    @property
    def pending_step(self) -> Optional[Step]:
        for s in self.steps:
            if s.status == StepStatus.PENDING:
                return s
        return None

    def step(self, step_id: str) -> Optional[Step]:
        for s in self.steps:
            if s.id == step_id:
                return s
        return None

    def step_at(self, order: int) -> Optional[Step]:
        if 1 <= order <= len(self.steps):
            return self.steps[order - 1]
        return None

    @property
    def completed_steps(self) -> Tuple[Step, ...]:
        return tuple(s for s in self.steps if s.status == StepStatus.COMPLETED)
