# approvals/models/workflow_config.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.config.config_service import ConfigService


@dataclass(frozen=True)
class WorkflowConfig:
    """Workflow settings, read from the ``[Workflow]``, ``[Database]`` and ``[Storage]`` sections."""
    db_path: Path
    artifact_root: Path
    log_db_path: Path
    date_format: str = "%b %d, %y %I:%M %p"
    timeout_days: int = 0

    @classmethod
    def from_config(cls, cfg: "ConfigService") -> "WorkflowConfig":
        return cls(
            db_path=Path(cfg.database.approvals),
            artifact_root=Path(cfg.storage.artifact_root),
            log_db_path=Path(cfg.database.logging),
            date_format=str(cfg.workflow.date_format),
            timeout_days=int(cfg.workflow.timeout_days),
        )
