"""Document status enumeration.

Derived from the steps, never set directly (see ``Document.status``).
"""
from __future__ import annotations

from enum import Enum


class DocumentStatus(str, Enum):
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.APPROVED, DocumentStatus.REJECTED)
