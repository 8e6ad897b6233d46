# approvals/logic/workflow_engine.py
"""
Workflow rules & guards for approvals.

- Stateless: takes a Document, returns a new Document. No storage, no I/O.
- Exactly one step is pending while the document is open; only its assignee
  may act on it.
- Sign completes the pending step and activates the next one; Reject halts
  the sequence for good.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from approvals.enum.step_status import StepStatus
from approvals.models.workflow_models import Document, Step
from core.common.errors import AuthorizationError, ValidationError
from core.models.user import Actor
from signature.models.signature_box import SignatureBox

TIMEOUT_NOTE = "[Auto-timeout after {days} days]"


class WorkflowEngine:
    """Stateless rules engine; the service persists the resulting documents."""

    # ----------------- Construction ------------------------------------------
    @staticmethod
    def build_steps(positions: Iterable[Tuple[str, str, Optional[str]]]) -> Tuple[Step, ...]:
        """
        ``positions``: (name, assignee_id, assignee_name) in approval order.
        First step starts pending, the rest queued.
        """
        steps: List[Step] = []
        for name, assignee_id, assignee_name in positions:
            order = len(steps) + 1
            steps.append(Step(
                id=uuid4().hex[:12],
                order=order,
                name=name,
                assignee_id=str(assignee_id),
                assignee_name=assignee_name,
                status=StepStatus.PENDING if order == 1 else StepStatus.QUEUED,
            ))
        if not steps:
            raise ValidationError("No approver could be resolved for this document.", field="steps")
        return tuple(steps)

    # ----------------- Guards ------------------------------------------------
    @staticmethod
    def can_act(doc: Document, actor: Optional[Actor]) -> bool:
        """UI hint only; :meth:`authorize` is authoritative."""
        step = doc.pending_step
        return bool(actor and step and step.assignee_id == actor.id)

    @staticmethod
    def authorize(doc: Document, step_id: str, actor: Optional[Actor]) -> Step:
        """Return the pending step if ``actor`` may act on ``step_id``; raise otherwise."""
        if actor is None:
            raise AuthorizationError("No actor is signed in.")
        if doc.status.is_terminal:
            raise AuthorizationError(f"Document {doc.id} is already {doc.status.value}.")
        step = doc.step(step_id)
        if step is None:
            raise AuthorizationError(f"Step {step_id} does not belong to document {doc.id}.", field="step_id")
        if step.status != StepStatus.PENDING:
            raise AuthorizationError(
                f"Step {step.order} ({step.name}) is {step.status.value}, not the current pending step.",
                field="step_id",
            )
        if step.assignee_id != actor.id:
            raise AuthorizationError(f"Only the assignee of step {step.order} ({step.name}) can act on it.")
        return step

    # ----------------- Transitions -------------------------------------------
    @staticmethod
    def _with_step(doc: Document, new: Step, **changes) -> Document:
        steps = tuple(new if s.id == new.id else s for s in doc.steps)
        return replace(doc, steps=steps, **changes)

    def apply_sign(
        self,
        doc: Document,
        step_id: str,
        actor: Actor,
        boxes: Sequence[SignatureBox],
        *,
        now: datetime,
        file_path: Optional[str] = None,
    ) -> Document:
        step = self.authorize(doc, step_id, actor)
        if not boxes:
            raise ValidationError("Place at least one signature box before signing.", field="signature_map")

        done = replace(step, status=StepStatus.COMPLETED, signed_at=now, acted_at=now,
                       signature_map=tuple(boxes))
        steps = [done if s.id == step.id else s for s in doc.steps]
        nxt = doc.step_at(step.order + 1)
        if nxt is not None:
            steps[nxt.order - 1] = replace(nxt, status=StepStatus.PENDING)

        return replace(
            doc,
            steps=tuple(steps),
            current_step_order=doc.current_step_order + 1,
            file_path=file_path or doc.file_path,
            updated_at=now,
        )

    def apply_reject(self, doc: Document, step_id: str, actor: Actor, reason: str, *, now: datetime) -> Document:
        step = self.authorize(doc, step_id, actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to reject a step.", field="reason")
        rejected = replace(step, status=StepStatus.REJECTED, note=reason, acted_at=now)
        return self._with_step(doc, rejected, updated_at=now)

    def apply_note(self, doc: Document, step_id: str, actor: Actor, note: str, *, now: datetime) -> Document:
        step = self.authorize(doc, step_id, actor)
        return self._with_step(doc, replace(step, note=(note or "").strip()), updated_at=now)

    @staticmethod
    def apply_timeout(doc: Document, days: int, *, now: datetime) -> Document:
        """Reject the pending step of a stale document on behalf of the system."""
        step = doc.pending_step
        if step is None or doc.status.is_terminal:
            return doc
        tag = TIMEOUT_NOTE.format(days=days)
        note = f"{step.note} {tag}" if step.note else tag
        rejected = replace(step, status=StepStatus.REJECTED, note=note, acted_at=now)
        steps = tuple(rejected if s.id == step.id else s for s in doc.steps)
        return replace(doc, steps=steps, updated_at=now)
