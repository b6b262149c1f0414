from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role used for authorization."""

    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class BindingStatus(str, Enum):
    UNBOUND = "unbound"
    BOUND = "bound"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"


class AttendanceStatus(str, Enum):
    """Attendance status as stored in the database."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
