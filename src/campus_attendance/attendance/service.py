from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..binding.service import BindingService
from ..common.datetime_utils import as_local
from ..common.validators import parse_float, require_coordinates
from ..core.constants import DEFAULT_HISTORY_LIMIT, WEEK_WINDOW_DAYS
from ..core.enums import AttendanceStatus
from ..core.exceptions import BindingRequired, DuplicateCheckIn, ValidationError
from ..courses.repository import CourseRepository
from .model import AttendanceRecord, AttendanceStats, CourseAttendanceRow
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 200


def default_notes(accuracy: Optional[float]) -> str:
    if accuracy is None:
        return "GPS點名"
    # Half-up rounding, as the check-in page displays it.
    return f"GPS點名 - 準確度: {int(math.floor(accuracy + 0.5))}公尺"


def _clean_notes(notes) -> Optional[str]:
    # Free text; form and JSON clients may send numbers.
    if notes is None:
        return None
    return str(notes).strip() or None


class AttendanceService:
    """Use case: daily GPS check-in plus the read models built on it."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        binding: BindingService,
        courses: CourseRepository | None = None,
    ):
        self._attendance = attendance
        self._binding = binding
        self._courses = courses

    def has_checked_in_today(self, user_id: int, *, now: datetime | None = None) -> bool:
        return self._attendance.has_record_on(user_id, as_local(now).date())

    def record(
        self,
        user_id: int,
        student_id: Optional[str],
        latitude,
        longitude,
        accuracy=None,
        *,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None,
        notes: Optional[str] = None,
        course_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        binding = self._binding.resolve_binding(user_id)
        if not binding.bound:
            raise BindingRequired("請先綁定學號才能點名")
        if student_id is not None and str(student_id).strip() != binding.student_id:
            raise BindingRequired("學號與綁定資料不符，請重新登入")

        lat, lng = require_coordinates(latitude, longitude)
        acc = parse_float(accuracy)

        if course_id is not None and self._courses is not None:
            if not self._courses.get_by_id(int(course_id)):
                raise ValidationError("課程不存在")

        now = as_local(now)
        today = now.date()
        if self._attendance.has_record_on(user_id, today):
            raise DuplicateCheckIn("今日已完成點名，無法重複點名")

        record = self._attendance.create_checkin(
            user_id=user_id,
            student_id=binding.student_id,
            latitude=lat,
            longitude=lng,
            accuracy=acc,
            timestamp=now,
            check_in_date=today,
            status=AttendanceStatus.PRESENT,
            course_id=int(course_id) if course_id is not None else None,
            device_info=device_info,
            ip_address=ip_address,
            notes=_clean_notes(notes) or default_notes(acc),
        )
        if record is None:
            raise DuplicateCheckIn("今日已完成點名，無法重複點名")

        logger.info("Check-in %s recorded for user %s (accuracy=%s)", record.id, user_id, acc)
        return record

    def stats(self, user_id: int, *, now: datetime | None = None) -> AttendanceStats:
        today = as_local(now).date()
        return self._attendance.get_stats(
            user_id,
            today=today,
            week_start=today - timedelta(days=WEEK_WINDOW_DAYS),
        )

    def history(self, user_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        limit = max(1, min(int(limit), MAX_HISTORY_LIMIT))
        return self._attendance.get_recent_for_user(user_id, limit)

    def today_records(self, user_id: int, *, now: datetime | None = None) -> Sequence[AttendanceRecord]:
        return self._attendance.get_for_user_and_date(user_id, as_local(now).date())

    def course_attendance(self, course_id: int) -> Sequence[CourseAttendanceRow]:
        return self._attendance.find_course_attendance(course_id)

    def update_status(self, record_id: int, status: str, notes: Optional[str] = None) -> None:
        try:
            new_status = AttendanceStatus(str(status or "").strip())
        except ValueError:
            raise ValidationError("無效的點名狀態")

        if not self._attendance.update_status(record_id, status=new_status, notes=_clean_notes(notes)):
            raise ValidationError("找不到點名紀錄")
        logger.info("Attendance %s status set to %s", record_id, new_status.value)

    def delete(self, record_id: int, user_id: int) -> None:
        if not self._attendance.delete(record_id, user_id=user_id):
            raise ValidationError("找不到點名紀錄")
        logger.info("Attendance %s of user %s deleted", record_id, user_id)
