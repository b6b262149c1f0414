from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from sqlalchemy import text

from ..common.datetime_utils import parse_timestamp
from ..database.connection import Database
from ..database.sqlite_base import db_transaction, fetchall, fetchone
from .model import Course
from .repository import CourseRepository

_COURSE_COLUMNS = """
    id, course_code, course_name, instructor, department, credits, semester, classroom, schedule,
    description, max_students, status, created_at, updated_at
"""


def map_course_row(r: Dict[str, Any]) -> Course:
    return Course(
        id=int(r["id"]),
        course_code=r["course_code"],
        course_name=r["course_name"],
        instructor=r.get("instructor"),
        department=r.get("department"),
        credits=int(r.get("credits") or 0),
        semester=r.get("semester"),
        classroom=r.get("classroom"),
        schedule=r.get("schedule"),
        description=r.get("description"),
        max_students=int(r.get("max_students") or 0),
        status=r.get("status") or "active",
        created_at=parse_timestamp(r.get("created_at")),
        updated_at=parse_timestamp(r.get("updated_at")),
    )


class SQLiteCourseRepository(CourseRepository):
    def __init__(self, database: Database):
        self._db = database

    def get_by_id(self, course_id: int) -> Optional[Course]:
        with db_transaction(self._db, context="load course") as conn:
            row = fetchone(
                conn.execute(text(f"SELECT {_COURSE_COLUMNS} FROM courses WHERE id = :id"), {"id": int(course_id)})
            )
            return map_course_row(row) if row else None

    def list_active(self) -> Sequence[Course]:
        with db_transaction(self._db, context="list courses") as conn:
            rows = fetchall(
                conn.execute(
                    text(f"SELECT {_COURSE_COLUMNS} FROM courses WHERE status = 'active' ORDER BY course_code")
                )
            )
            return [map_course_row(r) for r in rows]
