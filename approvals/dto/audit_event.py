"""Audit event DTO for the approval workflow.

Audit events are not stored in a table of their own; they go through the
central SQLite ``Logger`` (feature ``approvals``, ``reference_id`` = document id).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class AuditAction(Enum):
    """Audit action types for the approval workflow."""

    DOCUMENT_SUBMITTED = "document_submitted"
    DOCUMENT_SIGNED = "document_signed"
    DOCUMENT_APPROVED = "document_approved"
    DOCUMENT_REJECTED = "document_rejected"
    NOTE_UPDATED = "note_updated"
    DOCUMENT_TIMEOUT = "document_timeout"
    SIGN_FAILED = "sign_failed"


class AuditSeverity(Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class AuditEvent:
    """Immutable audit log event."""

    event_type: AuditAction
    occurred_at: datetime
    actor_id: str
    actor_name: Optional[str] = None
    doc_id: Optional[str] = None
    doc_status: Optional[str] = None
    step_order: Optional[int] = None
    reason: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    severity: AuditSeverity = AuditSeverity.INFO

    def to_log_string(self) -> str:
        parts = [
            f"{self.event_type.value}",
            f"by {self.actor_name or self.actor_id}",
        ]
        if self.doc_id:
            parts.append(f"on {self.doc_id}")
        if self.step_order is not None:
            parts.append(f"step {self.step_order}")
        if self.doc_status:
            parts.append(f"-> {self.doc_status}")
        if self.reason:
            parts.append(f"- {self.reason}")
        if self.error_message:
            parts.append(f"Error: {self.error_message}")
        return " ".join(parts)
