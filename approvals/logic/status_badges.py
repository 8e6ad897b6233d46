"""Display badges for step and document states.

Every status maps to exactly one badge; an unmapped member raises so a new
status cannot silently fall through to a default look.
"""
from __future__ import annotations

from dataclasses import dataclass

from approvals.enum.document_status import DocumentStatus
from approvals.enum.step_status import StepStatus


@dataclass(frozen=True)
class StatusBadge:
    label: str
    css_class: str
    icon: str


def step_badge(status: StepStatus) -> StatusBadge:
    if status == StepStatus.COMPLETED:
        return StatusBadge("Completed", "completed", "bi-check-circle-fill")
    if status == StepStatus.REJECTED:
        return StatusBadge("Rejected", "rejected", "bi-x-circle-fill")
    if status == StepStatus.PENDING:
        return StatusBadge("Pending", "pending", "bi-hourglass-split")
    if status == StepStatus.QUEUED:
        return StatusBadge("Waiting", "waiting", "bi-circle")
    raise ValueError(f"No badge for step status {status!r}")


def document_badge(status: DocumentStatus) -> StatusBadge:
    if status == DocumentStatus.SUBMITTED:
        return StatusBadge("Submitted", "bg-secondary text-white", "bi-send")
    if status == DocumentStatus.IN_REVIEW:
        return StatusBadge("In review", "bg-warning text-dark", "bi-hourglass-split")
    if status == DocumentStatus.APPROVED:
        return StatusBadge("Approved", "bg-success text-white", "bi-check-circle-fill")
    if status == DocumentStatus.REJECTED:
        return StatusBadge("Rejected", "bg-danger text-white", "bi-x-circle-fill")
    raise ValueError(f"No badge for document status {status!r}")
