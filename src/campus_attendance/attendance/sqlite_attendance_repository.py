from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ..common.datetime_utils import parse_iso_date, parse_timestamp
from ..core.enums import AttendanceStatus
from ..database.connection import Database
from ..database.sqlite_base import db_transaction, fetchall, fetchone, is_unique_violation
from .model import AttendanceRecord, AttendanceStats, CourseAttendanceRow
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    ar.id, ar.user_id, ar.student_id, ar.course_id, ar.latitude, ar.longitude, ar.accuracy,
    ar.timestamp, ar.check_in_date, ar.status, ar.device_info, ar.ip_address, ar.notes, ar.created_at
"""


def map_record_row(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        id=int(r["id"]),
        user_id=int(r["user_id"]),
        student_id=str(r["student_id"]),
        course_id=int(r["course_id"]) if r.get("course_id") is not None else None,
        latitude=float(r["latitude"]),
        longitude=float(r["longitude"]),
        accuracy=float(r["accuracy"]) if r.get("accuracy") is not None else None,
        timestamp=parse_timestamp(r["timestamp"]),
        check_in_date=parse_iso_date(str(r["check_in_date"])),
        status=AttendanceStatus(r.get("status") or AttendanceStatus.PRESENT.value),
        device_info=r.get("device_info"),
        ip_address=r.get("ip_address"),
        notes=r.get("notes"),
        created_at=parse_timestamp(r.get("created_at")),
    )


class SQLiteAttendanceRepository(AttendanceRepository):
    def __init__(self, database: Database):
        self._db = database

    def has_record_on(self, user_id: int, check_in_date: date) -> bool:
        with db_transaction(self._db, context="check daily record") as conn:
            row = fetchone(
                conn.execute(
                    text(
                        "SELECT 1 AS found FROM attendance_records "
                        "WHERE user_id = :user_id AND check_in_date = :check_in_date LIMIT 1"
                    ),
                    {"user_id": int(user_id), "check_in_date": check_in_date.isoformat()},
                )
            )
            return row is not None

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
        params = {
            "user_id": int(user_id),
            "student_id": student_id,
            "course_id": course_id,
            "latitude": latitude,
            "longitude": longitude,
            "accuracy": accuracy,
            "timestamp": timestamp.isoformat(),
            "check_in_date": check_in_date.isoformat(),
            "status": status.value,
            "device_info": device_info,
            "ip_address": ip_address,
            "notes": notes,
        }
        with db_transaction(self._db, context="record check-in") as conn:
            existing = fetchone(
                conn.execute(
                    text(
                        "SELECT id FROM attendance_records "
                        "WHERE user_id = :user_id AND check_in_date = :check_in_date LIMIT 1"
                    ),
                    {"user_id": params["user_id"], "check_in_date": params["check_in_date"]},
                )
            )
            if existing:
                return None

            try:
                with conn.begin_nested():
                    result = conn.execute(
                        text(
                            """
                            INSERT INTO attendance_records (
                                user_id, student_id, course_id, latitude, longitude, accuracy,
                                timestamp, check_in_date, status, device_info, ip_address, notes
                            )
                            VALUES (
                                :user_id, :student_id, :course_id, :latitude, :longitude, :accuracy,
                                :timestamp, :check_in_date, :status, :device_info, :ip_address, :notes
                            )
                            """
                        ),
                        params,
                    )
            except IntegrityError as e:
                if is_unique_violation(e):
                    return None
                raise

            row = fetchone(
                conn.execute(
                    text(f"SELECT {_RECORD_COLUMNS} FROM attendance_records ar WHERE ar.id = :id"),
                    {"id": int(result.lastrowid)},
                )
            )
            return map_record_row(row)

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_transaction(self._db, context="load attendance history") as conn:
            rows = fetchall(
                conn.execute(
                    text(
                        f"""
                        SELECT {_RECORD_COLUMNS}
                        FROM attendance_records ar
                        WHERE ar.user_id = :user_id
                        ORDER BY ar.timestamp DESC, ar.id DESC
                        LIMIT :limit
                        """
                    ),
                    {"user_id": int(user_id), "limit": int(limit)},
                )
            )
            return [map_record_row(r) for r in rows]

    def get_for_user_and_date(self, user_id: int, check_in_date: date) -> Sequence[AttendanceRecord]:
        with db_transaction(self._db, context="load daily attendance") as conn:
            rows = fetchall(
                conn.execute(
                    text(
                        f"""
                        SELECT {_RECORD_COLUMNS}
                        FROM attendance_records ar
                        WHERE ar.user_id = :user_id AND ar.check_in_date = :check_in_date
                        ORDER BY ar.timestamp DESC, ar.id DESC
                        """
                    ),
                    {"user_id": int(user_id), "check_in_date": check_in_date.isoformat()},
                )
            )
            return [map_record_row(r) for r in rows]

    def get_stats(self, user_id: int, *, today: date, week_start: date) -> AttendanceStats:
        with db_transaction(self._db, context="attendance stats") as conn:
            row = fetchone(
                conn.execute(
                    text(
                        """
                        SELECT
                            COUNT(*) AS total_records,
                            COALESCE(SUM(CASE WHEN status = 'present' THEN 1 ELSE 0 END), 0) AS present_count,
                            COALESCE(SUM(CASE WHEN status = 'late' THEN 1 ELSE 0 END), 0) AS late_count,
                            COALESCE(SUM(CASE WHEN status = 'absent' THEN 1 ELSE 0 END), 0) AS absent_count,
                            COALESCE(SUM(CASE WHEN check_in_date = :today THEN 1 ELSE 0 END), 0) AS today_records,
                            COALESCE(SUM(CASE WHEN check_in_date >= :week_start THEN 1 ELSE 0 END), 0)
                                AS this_week_records,
                            COALESCE(AVG(accuracy), 0) AS average_accuracy
                        FROM attendance_records
                        WHERE user_id = :user_id
                        """
                    ),
                    {"user_id": int(user_id), "today": today.isoformat(), "week_start": week_start.isoformat()},
                )
            ) or {}
            return AttendanceStats(
                total_records=int(row.get("total_records") or 0),
                present_count=int(row.get("present_count") or 0),
                late_count=int(row.get("late_count") or 0),
                absent_count=int(row.get("absent_count") or 0),
                today_records=int(row.get("today_records") or 0),
                this_week_records=int(row.get("this_week_records") or 0),
                average_accuracy_meters=float(row.get("average_accuracy") or 0.0),
            )

    def find_course_attendance(self, course_id: int) -> Sequence[CourseAttendanceRow]:
        with db_transaction(self._db, context="load course attendance") as conn:
            rows = fetchall(
                conn.execute(
                    text(
                        f"""
                        SELECT {_RECORD_COLUMNS}, u.name AS user_name, u.email AS user_email
                        FROM attendance_records ar
                        JOIN users u ON u.id = ar.user_id
                        WHERE ar.course_id = :course_id
                        ORDER BY ar.timestamp DESC, ar.id DESC
                        """
                    ),
                    {"course_id": int(course_id)},
                )
            )
            return [
                CourseAttendanceRow(record=map_record_row(r), user_name=r["user_name"], user_email=r["user_email"])
                for r in rows
            ]

    def update_status(self, record_id: int, *, status: AttendanceStatus, notes: Optional[str] = None) -> bool:
        with db_transaction(self._db, context="update attendance status") as conn:
            result = conn.execute(
                text(
                    """
                    UPDATE attendance_records
                    SET status = :status,
                        notes = COALESCE(:notes, notes)
                    WHERE id = :id
                    """
                ),
                {"status": status.value, "notes": notes, "id": int(record_id)},
            )
            return result.rowcount > 0

    def delete(self, record_id: int, *, user_id: int) -> bool:
        with db_transaction(self._db, context="delete attendance record") as conn:
            result = conn.execute(
                text("DELETE FROM attendance_records WHERE id = :id AND user_id = :user_id"),
                {"id": int(record_id), "user_id": int(user_id)},
            )
            return result.rowcount > 0
