"""Step status enumeration."""
from __future__ import annotations

from enum import Enum


class StepStatus(str, Enum):
    """
    queued -> pending -> completed | rejected

    ``completed`` and ``rejected`` are terminal.
    """

    QUEUED = "queued"
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.REJECTED)
