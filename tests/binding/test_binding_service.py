from __future__ import annotations

from dataclasses import replace
from typing import Optional

import pytest

from campus_attendance.binding.model import ClaimResult
from campus_attendance.binding.service import BindingService
from campus_attendance.core.enums import BindingStatus, Role, StudentStatus
from campus_attendance.core.exceptions import (
    AlreadyBound,
    AlreadyClaimed,
    InvalidFormat,
    NameMismatch,
    StudentNotFound,
)
from campus_attendance.students.model import Student
from campus_attendance.users.model import User


def _user(user_id: int, **kw) -> User:
    return User(
        user_id=user_id,
        external_id=f"sub-{user_id}",
        email=f"u{user_id}@example.com",
        name=f"User {user_id}",
        avatar_url=None,
        locale="zh-TW",
        verified_email=True,
        role=Role.USER,
        login_count=1,
        **kw,
    )


class InMemoryUsers:
    def __init__(self, *users: User):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)


class InMemoryStudents:
    def __init__(self, *students: Student):
        self.students = {s.student_id: s for s in students}

    def get_by_student_id(self, student_id: str) -> Optional[Student]:
        return self.students.get(student_id)


class InMemoryBindings:
    def __init__(self, users: InMemoryUsers, students: InMemoryStudents):
        self._users = users
        self._students = students
        self.claims = 0

    def claim_student(self, *, user_id: int, student_id: str, expected_name: str) -> ClaimResult:
        user = self._users.get_by_id(user_id)
        if not user:
            return ClaimResult.USER_NOT_FOUND
        if user.is_bound:
            return ClaimResult.ALREADY_BOUND
        student = self._students.get_by_student_id(student_id)
        if not student or not student.is_active:
            return ClaimResult.STUDENT_NOT_FOUND
        if student.name != expected_name:
            return ClaimResult.NAME_MISMATCH
        if any(u.is_bound and u.student_id == student_id for u in self._users.users.values()):
            return ClaimResult.ALREADY_CLAIMED

        self._users.users[user_id] = replace(user, student_id=student_id, binding_status=BindingStatus.BOUND)
        self.claims += 1
        return ClaimResult.CLAIMED


@pytest.fixture
def env():
    users = InMemoryUsers(_user(1), _user(2))
    students = InMemoryStudents(
        Student(id=1, student_id="123456", name="王小明", department="資訊工程系", grade=3),
        Student(id=2, student_id="234567", name="李小華", status=StudentStatus.GRADUATED),
    )
    bindings = InMemoryBindings(users, students)
    return BindingService(users, students, bindings), users, bindings


def test_bind_succeeds_and_resolves(env):
    service, users, _ = env

    binding = service.bind(1, " 123456 ", " 王小明 ")

    assert binding.bound is True
    assert binding.student_id == "123456"
    assert binding.student.name == "王小明"
    assert users.get_by_id(1).binding_status == BindingStatus.BOUND


def test_already_bound_wins_over_format_errors(env):
    service, _, _ = env
    service.bind(1, "123456", "王小明")

    with pytest.raises(AlreadyBound):
        service.bind(1, "bad", "x")


@pytest.mark.parametrize(
    "student_id, name, error",
    [
        ("12345", "王小明", InvalidFormat),
        ("123456", "王", InvalidFormat),
        ("999999", "王小明", StudentNotFound),
        ("234567", "李小華", StudentNotFound),  # graduated, not active
        ("123456", "李四", NameMismatch),
        ("123456", "王小名", NameMismatch),
    ],
)
def test_bind_failures_do_not_mutate(env, student_id, name, error):
    service, users, bindings = env

    with pytest.raises(error):
        service.bind(1, student_id, name)

    assert users.get_by_id(1).binding_status == BindingStatus.UNBOUND
    assert bindings.claims == 0


def test_second_user_cannot_claim_bound_student(env):
    service, users, _ = env
    service.bind(1, "123456", "王小明")

    with pytest.raises(AlreadyClaimed):
        service.bind(2, "123456", "王小明")

    assert users.get_by_id(2).is_bound is False


def test_resolve_binding_is_idempotent(env):
    service, _, _ = env
    assert service.resolve_binding(1) == service.resolve_binding(1)

    service.bind(1, "123456", "王小明")
    first = service.resolve_binding(1)
    assert first == service.resolve_binding(1)
    assert first.bound is True


def test_resolve_binding_needs_both_status_and_student_id():
    users = InMemoryUsers(_user(1, binding_status=BindingStatus.BOUND, student_id=None))
    students = InMemoryStudents()
    service = BindingService(users, students, InMemoryBindings(users, students))

    assert service.resolve_binding(1).bound is False
    assert service.resolve_binding(404).bound is False


def test_preview_returns_student_without_binding(env):
    service, users, bindings = env

    student = service.preview(1, "123456", "王小明")

    assert student.department == "資訊工程系"
    assert users.get_by_id(1).is_bound is False
    assert bindings.claims == 0

    with pytest.raises(NameMismatch):
        service.preview(1, "123456", "李四")
