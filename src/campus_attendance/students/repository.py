from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Student, StudentStats


class StudentRepository(Protocol):
    def get_by_student_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Student]:
        raise NotImplementedError

    def get_stats(self) -> StudentStats:
        """Roster totals; "bound" means claimed by a user with a confirmed binding."""

        raise NotImplementedError
