from __future__ import annotations

from typing import Optional

from .model import Student, StudentStats
from .repository import StudentRepository


class StudentService:
    """Use case: roster lookups for binding and the admin overview."""

    def __init__(self, students: StudentRepository):
        self._students = students

    def find_active(self, student_id: str) -> Optional[Student]:
        student = self._students.get_by_student_id((student_id or "").strip())
        if student and student.is_active:
            return student
        return None

    def list_active(self):
        return self._students.list_active()

    def stats(self) -> StudentStats:
        return self._students.get_stats()
