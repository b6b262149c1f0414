from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from .attendance.service import AttendanceService
from .attendance.sqlite_attendance_repository import SQLiteAttendanceRepository
from .binding.service import BindingService
from .binding.sqlite_binding_repository import SQLiteBindingRepository
from .config import Settings
from .courses.sqlite_course_repository import SQLiteCourseRepository
from .database.connection import Database, DBConfig
from .students.service import StudentService
from .students.sqlite_student_repository import SQLiteStudentRepository
from .users.google_oauth import GoogleOAuthClient, OAuthClientConfig
from .users.service import AuthService, UserService
from .users.sqlite_user_repository import SQLiteUserRepository


@dataclass(frozen=True)
class Container:
    database: Database

    users_repo: SQLiteUserRepository
    students_repo: SQLiteStudentRepository
    courses_repo: SQLiteCourseRepository
    bindings_repo: SQLiteBindingRepository
    attendance_repo: SQLiteAttendanceRepository

    oauth_client: GoogleOAuthClient
    auth_service: AuthService
    user_service: UserService
    student_service: StudentService
    binding_service: BindingService
    attendance_service: AttendanceService

    def close(self) -> None:
        self.database.close()


def build_container(
    settings: Settings,
    *,
    database: Optional[Database] = None,
    http_session: Optional[requests.Session] = None,
) -> Container:
    if database is None:
        database = Database(DBConfig(path=settings.database_path, echo=settings.enable_database_logging))
    database.open()

    users_repo = SQLiteUserRepository(database)
    students_repo = SQLiteStudentRepository(database)
    courses_repo = SQLiteCourseRepository(database)
    bindings_repo = SQLiteBindingRepository(database)
    attendance_repo = SQLiteAttendanceRepository(database)

    oauth_client = GoogleOAuthClient(
        OAuthClientConfig(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            callback_url=settings.google_callback_url,
        ),
        session=http_session,
    )
    auth_service = AuthService(users_repo)
    user_service = UserService(users_repo)
    student_service = StudentService(students_repo)
    binding_service = BindingService(users_repo, students_repo, bindings_repo)
    attendance_service = AttendanceService(attendance_repo, binding_service, courses_repo)

    return Container(
        database=database,
        users_repo=users_repo,
        students_repo=students_repo,
        courses_repo=courses_repo,
        bindings_repo=bindings_repo,
        attendance_repo=attendance_repo,
        oauth_client=oauth_client,
        auth_service=auth_service,
        user_service=user_service,
        student_service=student_service,
        binding_service=binding_service,
        attendance_service=attendance_service,
    )
