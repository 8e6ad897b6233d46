"""
core/common/errors.py
=====================

Shared error hierarchy for the approval workflow and the signature feature.

Every error carries a short machine ``kind`` so controllers can hand a stable
identifier to the caller next to the human message.
"""
from __future__ import annotations


class WorkflowError(Exception):
    """Base exception for workflow and signing failures."""

    kind: str = "error"
    retryable: bool = False

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(WorkflowError):
    """Malformed geometry, empty rejection reason or missing signature content."""

    kind = "validation"


class AuthorizationError(WorkflowError):
    """Actor is not the assignee, or the step is not the current pending step."""

    kind = "authorization"


class ConflictError(WorkflowError):
    """The document changed concurrently. Reload and retry."""

    kind = "conflict"
    retryable = True


class ArtifactError(WorkflowError):
    """Embedding failed (corrupt source PDF, unsupported page, ...)."""

    kind = "artifact"
    retryable = True


class TransportError(WorkflowError):
    """Backend could not be reached. Nothing is assumed committed."""

    kind = "transport"
    retryable = True
