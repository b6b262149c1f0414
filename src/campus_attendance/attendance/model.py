from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One GPS-stamped check-in. Immutable once written, except the admin status fix."""

    id: int
    user_id: int
    student_id: str
    latitude: float
    longitude: float
    accuracy: Optional[float]
    timestamp: datetime
    check_in_date: date
    status: AttendanceStatus = AttendanceStatus.PRESENT
    course_id: Optional[int] = None
    device_info: Optional[str] = None
    ip_address: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "student_id": self.student_id,
            "course_id": self.course_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "timestamp": self.timestamp.isoformat(),
            "check_in_date": self.check_in_date.isoformat(),
            "status": self.status.value,
            "device_info": self.device_info,
            "ip_address": self.ip_address,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class CourseAttendanceRow:
    record: AttendanceRecord
    user_name: str
    user_email: str

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["user_name"] = self.user_name
        data["user_email"] = self.user_email
        return data


@dataclass(frozen=True)
class AttendanceStats:
    total_records: int = 0
    present_count: int = 0
    late_count: int = 0
    absent_count: int = 0
    today_records: int = 0
    this_week_records: int = 0
    average_accuracy_meters: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_records": self.total_records,
            "present_count": self.present_count,
            "late_count": self.late_count,
            "absent_count": self.absent_count,
            "today_records": self.today_records,
            "this_week_records": self.this_week_records,
            "average_accuracy_meters": self.average_accuracy_meters,
        }
