from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ..core.enums import BindingStatus, StudentStatus
from ..database.connection import Database
from ..database.sqlite_base import db_transaction, fetchone, is_unique_violation
from .model import ClaimResult
from .repository import BindingRepository

logger = logging.getLogger(__name__)


class SQLiteBindingRepository(BindingRepository):
    def __init__(self, database: Database):
        self._db = database

    def claim_student(self, *, user_id: int, student_id: str, expected_name: str) -> ClaimResult:
        with db_transaction(self._db, context="bind student") as conn:
            user = fetchone(
                conn.execute(
                    text("SELECT student_id, binding_status FROM users WHERE id = :user_id AND is_active = 1"),
                    {"user_id": int(user_id)},
                )
            )
            if not user:
                return ClaimResult.USER_NOT_FOUND
            if user["binding_status"] == BindingStatus.BOUND.value and user["student_id"] is not None:
                return ClaimResult.ALREADY_BOUND

            student = fetchone(
                conn.execute(
                    text("SELECT name, status FROM students WHERE student_id = :student_id"),
                    {"student_id": student_id},
                )
            )
            if not student or student["status"] != StudentStatus.ACTIVE.value:
                return ClaimResult.STUDENT_NOT_FOUND
            if student["name"] != expected_name:
                return ClaimResult.NAME_MISMATCH

            holder = fetchone(
                conn.execute(
                    text(
                        """
                        SELECT id FROM users
                        WHERE student_id = :student_id AND binding_status = 'bound' AND id != :user_id
                        """
                    ),
                    {"student_id": student_id, "user_id": int(user_id)},
                )
            )
            if holder:
                return ClaimResult.ALREADY_CLAIMED

            try:
                with conn.begin_nested():
                    conn.execute(
                        text(
                            """
                            UPDATE users
                            SET student_id = :student_id,
                                binding_status = 'bound',
                                updated_at = CURRENT_TIMESTAMP
                            WHERE id = :user_id
                            """
                        ),
                        {"student_id": student_id, "user_id": int(user_id)},
                    )
            except IntegrityError as e:
                if is_unique_violation(e):
                    logger.info("Student %s claimed concurrently; user %s lost", student_id, user_id)
                    return ClaimResult.ALREADY_CLAIMED
                raise

            return ClaimResult.CLAIMED
