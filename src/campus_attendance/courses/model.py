from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Course:
    """Reference data; a check-in may point at one."""

    id: int
    course_code: str
    course_name: str
    instructor: Optional[str] = None
    department: Optional[str] = None
    credits: int = 3
    semester: Optional[str] = None
    classroom: Optional[str] = None
    schedule: Optional[str] = None
    description: Optional[str] = None
    max_students: int = 50
    status: str = "active"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
