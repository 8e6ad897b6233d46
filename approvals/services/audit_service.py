"""Audit logging for the approval workflow.

Writes through the central SQLite ``Logger`` instead of an own table.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from approvals.dto.audit_event import AuditAction, AuditEvent, AuditSeverity

if TYPE_CHECKING:
    from core.logging.logic.logger import Logger
    from core.logging.models.log_entry import LogEntry

logger = logging.getLogger(__name__)

FEATURE = "approvals"


class AuditService:
    """
    Audit sink used by the workflow service.

    Recording is fire-and-forget: a failing audit store is reported on the
    application log and never undoes a committed transition.
    """

    def __init__(self, audit_logger: "Logger") -> None:
        self._log = audit_logger

    def record(self, event: AuditEvent) -> bool:
        try:
            self._log.log(
                FEATURE,
                event.event_type.value,
                user_id=event.actor_id,
                username=event.actor_name,
                level=event.severity.value,
                reference_id=event.doc_id,
                message=event.to_log_string(),
            )
            return True
        except Exception:
            logger.exception("Audit entry %s for %s could not be written", event.event_type.value, event.doc_id)
            return False

    def history(self, doc_id: str, *, limit: int = 200) -> List["LogEntry"]:
        """Audit trail of one document, newest first."""
        return self._log.query_logs(feature=FEATURE, reference_id=doc_id, limit=limit)

    def events(self, doc_id: str, action: Optional[AuditAction] = None) -> List["LogEntry"]:
        return self._log.query_logs(
            feature=FEATURE,
            reference_id=doc_id,
            event=action.value if action else None,
        )


def severity_for(action: AuditAction) -> AuditSeverity:
    if action == AuditAction.SIGN_FAILED:
        return AuditSeverity.ERROR
    if action == AuditAction.DOCUMENT_TIMEOUT:
        return AuditSeverity.WARNING
    return AuditSeverity.INFO
