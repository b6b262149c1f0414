from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..students.model import Student, student_summary


@dataclass(frozen=True)
class Binding:
    """Association of a user to a student record, as seen by the gate."""

    bound: bool
    student_id: Optional[str] = None
    student: Optional[Student] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bound": self.bound,
            "student_id": self.student_id,
            "student": student_summary(self.student) if self.student else None,
        }


class ClaimResult(str, Enum):
    """Outcome of the atomic claim, evaluated inside one write transaction."""

    CLAIMED = "claimed"
    USER_NOT_FOUND = "user_not_found"
    ALREADY_BOUND = "already_bound"
    STUDENT_NOT_FOUND = "student_not_found"
    NAME_MISMATCH = "name_mismatch"
    ALREADY_CLAIMED = "already_claimed"
