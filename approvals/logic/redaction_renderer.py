"""
Read-only labels over committed signatures.

For every completed step, one label per stored box: signer name, position and
signing time, placed at the box's rectangle scaled to the current render
size. Labels carry no interaction state and are never embedded.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import List, Optional, Tuple

from approvals.enum.document_type import DocumentType
from approvals.models.workflow_models import Document, Step
from signature.logic.geometry import normalized_to_screen
from signature.models.signature_box import ScreenRect, SignatureBox

DEFAULT_DATE_FORMAT = "%b %d, %y %I:%M %p"


@dataclass(frozen=True)
class RedactionLabel:
    step_id: str
    step_order: int
    box: SignatureBox
    rect: ScreenRect
    lines: Tuple[str, ...]
    # SAF labels stack their lines, all others run in one row
    stacked: bool = False

    @property
    def text(self) -> str:
        return ("\n" if self.stacked else " · ").join(self.lines)


class RedactionRenderer:
    def __init__(self, date_format: str = DEFAULT_DATE_FORMAT, tz: Optional[tzinfo] = None) -> None:
        self._date_format = date_format
        # None renders in the local zone of the running process
        self._tz = tz

    def label_lines(self, step: Step) -> Tuple[str, ...]:
        name = step.assignee_name or step.assignee_id
        when = step.signed_at.astimezone(self._tz).strftime(self._date_format) if step.signed_at else ""
        return tuple(x for x in (name, step.name, when) if x)

    def labels_for_page(self, doc: Document, page: int, canvas: ScreenRect) -> List[RedactionLabel]:
        stacked = doc.doc_type == DocumentType.SAF
        out: List[RedactionLabel] = []
        for step in doc.completed_steps:
            lines = self.label_lines(step)
            for box in step.signature_map:
                if box.page != page:
                    continue
                out.append(RedactionLabel(
                    step_id=step.id,
                    step_order=step.order,
                    box=box,
                    rect=normalized_to_screen(box, canvas),
                    lines=lines,
                    stacked=stacked,
                ))
        return out

    def committed(self, doc: Document) -> List[Tuple[SignatureBox, str]]:
        """(box, text) for every page, as taken by the placement dialog."""
        stacked = doc.doc_type == DocumentType.SAF
        sep = "\n" if stacked else " · "
        return [
            (box, sep.join(self.label_lines(step)))
            for step in doc.completed_steps
            for box in step.signature_map
        ]
