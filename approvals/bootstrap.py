# approvals/bootstrap.py
"""Wires the approval workflow from the layered configuration."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from approvals.adapters.artifact_store import FilesystemArtifactStore
from approvals.adapters.notification_sink import LoggingNotificationSink, NotificationSink
from approvals.controllers.workflow_controller import WorkflowController
from approvals.logic.redaction_renderer import RedactionRenderer
from approvals.logic.step_templates import AssigneeDirectory
from approvals.logic.timeout_service import TimeoutService
from approvals.logic.workflow_service import WorkflowService
from approvals.models.workflow_config import WorkflowConfig
from approvals.repository.sqlite_workflow_repository import SQLiteWorkflowRepository
from approvals.services.audit_service import AuditService
from core.config.config_service import ConfigService, get_config_service
from core.logging.logic.logger import Logger
from core.models.user import Actor
from signature.models.signature_config import SignatureConfig

logger = logging.getLogger(__name__)


@dataclass
class ApprovalsContext:
    config: WorkflowConfig
    signature_config: SignatureConfig
    repository: SQLiteWorkflowRepository
    artifacts: FilesystemArtifactStore
    audit_logger: Logger
    service: WorkflowService
    timeouts: TimeoutService
    controller: WorkflowController

    def close(self) -> None:
        self.repository.close()
        self.audit_logger.close()


def build_approvals(
    *,
    current_user_provider: Callable[[], Optional[Actor]],
    directory: Optional[AssigneeDirectory] = None,
    notifier: Optional[NotificationSink] = None,
    cfg: Optional[ConfigService] = None,
) -> ApprovalsContext:
    cfg = cfg or get_config_service()
    wf = WorkflowConfig.from_config(cfg)

    repository = SQLiteWorkflowRepository(wf.db_path)
    artifacts = FilesystemArtifactStore(wf.artifact_root)
    audit_logger = Logger(wf.log_db_path)
    service = WorkflowService(
        repository=repository,
        artifacts=artifacts,
        directory=directory,
        notifier=notifier or LoggingNotificationSink(),
        audit=AuditService(audit_logger),
    )
    timeouts = TimeoutService(service=service, repository=repository, timeout_days=wf.timeout_days)
    controller = WorkflowController(
        service=service,
        current_user_provider=current_user_provider,
        renderer=RedactionRenderer(wf.date_format),
    )
    logger.info("Approvals ready (db=%s, artifacts=%s, timeout=%sd)", wf.db_path, wf.artifact_root, wf.timeout_days)
    return ApprovalsContext(
        config=wf,
        signature_config=SignatureConfig.from_config(cfg),
        repository=repository,
        artifacts=artifacts,
        audit_logger=audit_logger,
        service=service,
        timeouts=timeouts,
        controller=controller,
    )
