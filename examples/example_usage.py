"""Example: drive the service layer directly (no Flask).

Controllers stay thin; the check-in rules live in the services.
"""

import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from campus_attendance.attendance.service import AttendanceService
from campus_attendance.attendance.sqlite_attendance_repository import SQLiteAttendanceRepository
from campus_attendance.binding.service import BindingService
from campus_attendance.binding.sqlite_binding_repository import SQLiteBindingRepository
from campus_attendance.database.bootstrap import apply_schema, apply_seed_sql
from campus_attendance.database.connection import Database, DBConfig
from campus_attendance.students.sqlite_student_repository import SQLiteStudentRepository
from campus_attendance.users.model import GoogleProfile
from campus_attendance.users.service import AuthService
from campus_attendance.users.sqlite_user_repository import SQLiteUserRepository


def main():
    with tempfile.TemporaryDirectory() as tmp, Database(DBConfig(path=str(Path(tmp) / "demo.db"))) as db:
        apply_schema(db)
        apply_seed_sql(db)

        users = SQLiteUserRepository(db)
        binding = BindingService(users, SQLiteStudentRepository(db), SQLiteBindingRepository(db))
        attendance = AttendanceService(SQLiteAttendanceRepository(db), binding)

        s_user = AuthService(users).login_with_google(
            GoogleProfile(external_id="demo-sub", email="demo@example.com", name="Demo")
        )
        print(binding.bind(s_user.user_id, "123456", "王小明"))
        print(attendance.record(s_user.user_id, "123456", 25.0330, 121.5654, 8.4))
        print(attendance.stats(s_user.user_id))


if __name__ == "__main__":
    main()
