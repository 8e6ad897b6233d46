"""Automatic rejection of documents left undecided for too long."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from approvals.logic.workflow_service import WorkflowService
from approvals.models.workflow_models import Document, utcnow
from approvals.repository.sqlite_workflow_repository import SQLiteWorkflowRepository
from core.common.errors import WorkflowError
from core.models.user import SYSTEM_ACTOR

logger = logging.getLogger(__name__)


class TimeoutService:
    """
    Rejects the pending step of every submitted/in-review document created
    ``timeout_days`` or more ago. ``timeout_days <= 0`` disables the sweep.

    Each document is handled in its own transaction; a failure on one is
    logged and the sweep continues.
    """

    def __init__(
        self,
        *,
        service: WorkflowService,
        repository: SQLiteWorkflowRepository,
        timeout_days: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._service = service
        self._repo = repository
        self._days = int(timeout_days)
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._days > 0

    def enforce(self, now: Optional[datetime] = None) -> List[Document]:
        if not self.enabled:
            return []
        now = now or self._clock()
        cutoff = now - timedelta(days=self._days)
        expired: List[Document] = []
        for doc_id in self._repo.list_open_created_before(cutoff):
            try:
                doc = self._service.expire(doc_id, SYSTEM_ACTOR, self._days)
            except WorkflowError as ex:
                logger.error("Timeout for document %s failed: %s", doc_id, ex)
                continue
            if doc is not None:
                expired.append(doc)
        if expired:
            logger.warning("Auto-rejected %d stale document(s) after %d days", len(expired), self._days)
        return expired
