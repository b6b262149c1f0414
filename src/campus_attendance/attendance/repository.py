from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, AttendanceStats, CourseAttendanceRow


class AttendanceRepository(Protocol):
    def has_record_on(self, user_id: int, check_in_date: date) -> bool:
        raise NotImplementedError

    def create_checkin(
        self,
        *,
        user_id: int,
        student_id: str,
        latitude: float,
        longitude: float,
        accuracy: Optional[float],
        timestamp: datetime,
        check_in_date: date,
        status: AttendanceStatus,
        course_id: Optional[int] = None,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        """Re-check the day and insert in one transaction.

        Returns None when the user already has a record on ``check_in_date``.
        """

        raise NotImplementedError

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, check_in_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_stats(self, user_id: int, *, today: date, week_start: date) -> AttendanceStats:
        raise NotImplementedError

    def find_course_attendance(self, course_id: int) -> Sequence[CourseAttendanceRow]:
        raise NotImplementedError

    def update_status(self, record_id: int, *, status: AttendanceStatus, notes: Optional[str] = None) -> bool:
        raise NotImplementedError

    def delete(self, record_id: int, *, user_id: int) -> bool:
        raise NotImplementedError
