"""
Approval step templates per document type and assignee resolution.

Each template lists the approving positions in order. Department-specific
positions (adviser, dean) are resolved within the submitter's department.
Positions nobody currently holds are skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from approvals.enum.document_type import DocumentType
from core.models.user import Actor, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepTemplate:
    position: str
    role: UserRole = UserRole.EMPLOYEE
    department_specific: bool = False


_STUDENT_GOVERNMENT = (
    StepTemplate("CSC Adviser", department_specific=True),
    StepTemplate("SSC President", role=UserRole.STUDENT),
    StepTemplate("Dean", department_specific=True),
    StepTemplate("OIC OSA"),
    StepTemplate("CPAO"),
    StepTemplate("VPAA"),
    StepTemplate("EVP"),
)

TEMPLATES: Dict[DocumentType, Tuple[StepTemplate, ...]] = {
    DocumentType.PROPOSAL: _STUDENT_GOVERNMENT,
    DocumentType.COMMUNICATION: _STUDENT_GOVERNMENT,
    DocumentType.SAF: (
        StepTemplate("Dean", department_specific=True),
        StepTemplate("OIC OSA"),
        StepTemplate("VPAA"),
        StepTemplate("EVP"),
    ),
    DocumentType.FACILITY: (
        StepTemplate("Dean", department_specific=True),
        StepTemplate("OIC OSA"),
        StepTemplate("EVP O"),
        StepTemplate("EVP"),
    ),
    DocumentType.MATERIAL: (
        StepTemplate("OIC OSA"),
    ),
}


class AssigneeDirectory(Protocol):
    """Looks up who currently holds a position."""

    def find(self, position: str, *, role: UserRole, department: Optional[str]) -> Optional[Actor]:
        ...


class InMemoryAssigneeDirectory:
    """Directory over a fixed list of actors (first match wins)."""

    def __init__(self, actors: Iterable[Actor] = ()) -> None:
        self._actors: List[Actor] = list(actors)

    def add(self, actor: Actor) -> None:
        self._actors.append(actor)

    def find(self, position: str, *, role: UserRole, department: Optional[str]) -> Optional[Actor]:
        for a in self._actors:
            if a.position != position or a.role != role:
                continue
            if department is not None and a.department != department:
                continue
            return a
        return None


def template_for(doc_type: DocumentType) -> Tuple[StepTemplate, ...]:
    return TEMPLATES[doc_type]


def resolve_positions(
    doc_type: DocumentType,
    directory: AssigneeDirectory,
    *,
    department: Optional[str],
) -> List[Tuple[str, str, Optional[str]]]:
    """(position, assignee_id, assignee_name) for every position that has a holder."""
    resolved: List[Tuple[str, str, Optional[str]]] = []
    for t in template_for(doc_type):
        holder = directory.find(
            t.position,
            role=t.role,
            department=department if t.department_specific else None,
        )
        if holder is None:
            logger.warning("No holder for position %r (dept=%s); step skipped", t.position, department)
            continue
        resolved.append((t.position, holder.id, holder.full_name))
    return resolved
