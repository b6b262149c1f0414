from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ..common.datetime_utils import parse_timestamp
from ..core.enums import BindingStatus, Role
from ..database.connection import Database
from ..database.sqlite_base import db_transaction, fetchone, is_unique_violation
from .model import GoogleProfile, User, UserStats
from .repository import UserRepository

_USER_COLUMNS = """
    id, external_id, email, name, avatar_url, locale, verified_email, role, login_count,
    is_active, student_id, binding_status, created_at, updated_at, last_login
"""


def map_user_row(r: Dict[str, Any]) -> User:
    return User(
        user_id=int(r["id"]),
        external_id=r["external_id"],
        email=r["email"],
        name=r["name"],
        avatar_url=r.get("avatar_url"),
        locale=r.get("locale") or "",
        verified_email=bool(r.get("verified_email")),
        role=Role(r.get("role") or Role.USER.value),
        login_count=int(r.get("login_count") or 0),
        is_active=bool(r.get("is_active", 1)),
        student_id=r.get("student_id"),
        binding_status=BindingStatus(r.get("binding_status") or BindingStatus.UNBOUND.value),
        created_at=parse_timestamp(r.get("created_at")),
        updated_at=parse_timestamp(r.get("updated_at")),
        last_login=parse_timestamp(r.get("last_login")),
    )


class SQLiteUserRepository(UserRepository):
    def __init__(self, database: Database):
        self._db = database

    def _get_one(self, where: str, params: dict) -> Optional[User]:
        with db_transaction(self._db, context="load user") as conn:
            row = fetchone(conn.execute(text(f"SELECT {_USER_COLUMNS} FROM users WHERE {where}"), params))
            return map_user_row(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("id = :user_id", {"user_id": int(user_id)})

    def get_by_external_id(self, external_id: str) -> Optional[User]:
        return self._get_one("external_id = :external_id", {"external_id": external_id})

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email = :email", {"email": email})

    def create_user(self, *, profile: GoogleProfile, role: Role, locale: str) -> Optional[int]:
        with db_transaction(self._db, context="create user") as conn:
            try:
                with conn.begin_nested():
                    result = conn.execute(
                        text(
                            """
                            INSERT INTO users (external_id, email, name, avatar_url, locale, verified_email,
                                               role, login_count, last_login)
                            VALUES (:external_id, :email, :name, :avatar_url, :locale, :verified_email,
                                    :role, 1, CURRENT_TIMESTAMP)
                            """
                        ),
                        {
                            "external_id": profile.external_id,
                            "email": profile.email,
                            "name": profile.name,
                            "avatar_url": profile.avatar_url,
                            "locale": locale,
                            "verified_email": 1 if profile.verified_email else 0,
                            "role": role.value,
                        },
                    )
            except IntegrityError as e:
                if is_unique_violation(e):
                    return None
                raise
            return int(result.lastrowid)

    def record_login(self, *, external_id: str, profile: GoogleProfile) -> bool:
        with db_transaction(self._db, context="record login") as conn:
            result = conn.execute(
                text(
                    """
                    UPDATE users
                    SET email = :email,
                        name = :name,
                        avatar_url = COALESCE(:avatar_url, avatar_url),
                        locale = COALESCE(:locale, locale),
                        verified_email = :verified_email,
                        last_login = CURRENT_TIMESTAMP,
                        login_count = login_count + 1,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE external_id = :external_id
                    """
                ),
                {
                    "email": profile.email,
                    "name": profile.name,
                    "avatar_url": profile.avatar_url,
                    "locale": profile.locale,
                    "verified_email": 1 if profile.verified_email else 0,
                    "external_id": external_id,
                },
            )
            return result.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_transaction(self._db, context="set user active") as conn:
            result = conn.execute(
                text("UPDATE users SET is_active = :is_active, updated_at = CURRENT_TIMESTAMP WHERE id = :user_id"),
                {"is_active": 1 if is_active else 0, "user_id": int(user_id)},
            )
            return result.rowcount > 0

    def get_stats(self, *, today: date) -> UserStats:
        with db_transaction(self._db, context="user stats") as conn:
            row = fetchone(
                conn.execute(
                    text(
                        """
                        SELECT
                            COUNT(*) AS total_users,
                            COALESCE(SUM(CASE WHEN date(created_at, 'localtime') = :today THEN 1 ELSE 0 END), 0)
                                AS new_users_today,
                            COALESCE(SUM(CASE WHEN date(created_at, 'localtime') >= :month_start THEN 1 ELSE 0 END), 0)
                                AS new_users_this_month,
                            COALESCE(SUM(CASE WHEN date(last_login, 'localtime') = :today THEN 1 ELSE 0 END), 0)
                                AS active_users_today,
                            COALESCE(SUM(login_count), 0) AS total_logins
                        FROM users
                        WHERE is_active = 1
                        """
                    ),
                    {"today": today.isoformat(), "month_start": today.replace(day=1).isoformat()},
                )
            ) or {}
            return UserStats(
                total_users=int(row.get("total_users") or 0),
                new_users_today=int(row.get("new_users_today") or 0),
                new_users_this_month=int(row.get("new_users_this_month") or 0),
                active_users_today=int(row.get("active_users_today") or 0),
                total_logins=int(row.get("total_logins") or 0),
            )
