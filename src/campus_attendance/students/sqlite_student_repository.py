from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from sqlalchemy import text

from ..common.datetime_utils import parse_timestamp
from ..core.enums import StudentStatus
from ..database.connection import Database
from ..database.sqlite_base import db_transaction, fetchall, fetchone
from .model import GroupCount, Student, StudentStats
from .repository import StudentRepository

_STUDENT_COLUMNS = """
    id, student_id, name, department, grade, class_code, phone, emergency_contact, emergency_phone,
    status, created_at, updated_at
"""

# A student counts as bound when some user holds it with a confirmed binding.
_BOUND_EXPR = """
    EXISTS (SELECT 1 FROM users u WHERE u.student_id = s.student_id AND u.binding_status = 'bound')
"""


def map_student_row(r: Dict[str, Any]) -> Student:
    return Student(
        id=int(r["id"]),
        student_id=str(r["student_id"]),
        name=r["name"],
        department=r.get("department"),
        grade=int(r["grade"]) if r.get("grade") is not None else None,
        class_code=r.get("class_code"),
        phone=r.get("phone"),
        emergency_contact=r.get("emergency_contact"),
        emergency_phone=r.get("emergency_phone"),
        status=StudentStatus(r.get("status") or StudentStatus.ACTIVE.value),
        created_at=parse_timestamp(r.get("created_at")),
        updated_at=parse_timestamp(r.get("updated_at")),
    )


class SQLiteStudentRepository(StudentRepository):
    def __init__(self, database: Database):
        self._db = database

    def get_by_student_id(self, student_id: str) -> Optional[Student]:
        with db_transaction(self._db, context="load student") as conn:
            row = fetchone(
                conn.execute(
                    text(f"SELECT {_STUDENT_COLUMNS} FROM students WHERE student_id = :student_id"),
                    {"student_id": student_id},
                )
            )
            return map_student_row(row) if row else None

    def list_active(self) -> Sequence[Student]:
        with db_transaction(self._db, context="list students") as conn:
            rows = fetchall(
                conn.execute(
                    text(f"SELECT {_STUDENT_COLUMNS} FROM students WHERE status = 'active' ORDER BY student_id")
                )
            )
            return [map_student_row(r) for r in rows]

    def get_stats(self) -> StudentStats:
        with db_transaction(self._db, context="student stats") as conn:
            totals = fetchone(
                conn.execute(
                    text(
                        f"""
                        SELECT
                            COUNT(*) AS total_students,
                            COALESCE(SUM(CASE WHEN s.status = 'active' THEN 1 ELSE 0 END), 0) AS active_students,
                            COALESCE(SUM(CASE WHEN {_BOUND_EXPR} THEN 1 ELSE 0 END), 0) AS bound_students
                        FROM students s
                        """
                    )
                )
            ) or {}
            departments = fetchall(
                conn.execute(
                    text(
                        f"""
                        SELECT
                            COALESCE(s.department, '') AS department,
                            COUNT(*) AS total,
                            COALESCE(SUM(CASE WHEN {_BOUND_EXPR} THEN 1 ELSE 0 END), 0) AS bound
                        FROM students s
                        WHERE s.status = 'active'
                        GROUP BY COALESCE(s.department, '')
                        ORDER BY department
                        """
                    )
                )
            )
            grades = fetchall(
                conn.execute(
                    text(
                        f"""
                        SELECT
                            s.grade AS grade,
                            COUNT(*) AS total,
                            COALESCE(SUM(CASE WHEN {_BOUND_EXPR} THEN 1 ELSE 0 END), 0) AS bound
                        FROM students s
                        WHERE s.status = 'active' AND s.grade IS NOT NULL
                        GROUP BY s.grade
                        ORDER BY s.grade
                        """
                    )
                )
            )

        total = int(totals.get("total_students") or 0)
        bound = int(totals.get("bound_students") or 0)
        return StudentStats(
            total_students=total,
            active_students=int(totals.get("active_students") or 0),
            bound_students=bound,
            unbound_students=total - bound,
            by_department={
                r["department"]: GroupCount(total=int(r["total"]), bound=int(r["bound"])) for r in departments
            },
            by_grade={int(r["grade"]): GroupCount(total=int(r["total"]), bound=int(r["bound"])) for r in grades},
        )
