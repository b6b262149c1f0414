from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Student:
    """Roster entry imported by administrators. Read-only for end users."""

    id: int
    student_id: str
    name: str
    department: Optional[str] = None
    grade: Optional[int] = None
    class_code: Optional[str] = None
    phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    status: StudentStatus = StudentStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == StudentStatus.ACTIVE


@dataclass(frozen=True)
class GroupCount:
    total: int
    bound: int


@dataclass(frozen=True)
class StudentStats:
    total_students: int
    active_students: int
    bound_students: int
    unbound_students: int
    by_department: Dict[str, GroupCount] = field(default_factory=dict)
    by_grade: Dict[int, GroupCount] = field(default_factory=dict)


def student_summary(student: Student) -> Dict[str, object]:
    """Fields safe to show the student themself (no contact data)."""
    return {
        "student_id": student.student_id,
        "name": student.name,
        "department": student.department,
        "grade": student.grade,
        "class_code": student.class_code,
    }
