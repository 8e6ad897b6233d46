"""
user.py

Identity of whoever acts on a workflow step.

Authentication happens elsewhere; the approval workflow only needs the
resolved identity of the current actor for assignee equality checks and
for the labels shown over committed signatures.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    """Account kinds known to the approval workflow."""
    STUDENT = "student"
    EMPLOYEE = "employee"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class Actor:
    """
    :param id: Stable identifier, compared against ``Step.assignee_id``
    :param role: Account kind
    :param position: Office/position title (e.g. "Dean"), used for step templates and labels
    :param full_name: Display name for signature labels
    :param department: Department used for department-specific assignees
    """
    id: str
    role: UserRole = UserRole.EMPLOYEE
    position: str = ""
    full_name: Optional[str] = None
    department: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.id

    def __str__(self) -> str:
        return f"Actor({self.id}): {self.display_name} [{self.role.value}, {self.position or 'n/a'}]"


SYSTEM_ACTOR = Actor(id="system", role=UserRole.SYSTEM, position="System", full_name="System")
