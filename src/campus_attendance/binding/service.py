from __future__ import annotations

import logging

from ..common.validators import validate_student_id, validate_student_name
from ..core.exceptions import AlreadyBound, AlreadyClaimed, NameMismatch, StudentNotFound, Unauthenticated
from ..students.model import Student
from ..students.repository import StudentRepository
from ..users.repository import UserRepository
from .model import Binding, ClaimResult
from .repository import BindingRepository

logger = logging.getLogger(__name__)


class BindingService:
    """Use case: the one-time user to student binding and the gate in front of check-in."""

    def __init__(self, users: UserRepository, students: StudentRepository, bindings: BindingRepository):
        self._users = users
        self._students = students
        self._bindings = bindings

    def resolve_binding(self, user_id: int) -> Binding:
        user = self._users.get_by_id(user_id)
        if not user or not user.is_bound:
            return Binding(bound=False)

        student = self._students.get_by_student_id(user.student_id)
        return Binding(bound=True, student_id=user.student_id, student=student)

    def bind(self, user_id: int, student_id: str, confirmed_name: str) -> Binding:
        if self.resolve_binding(user_id).bound:
            raise AlreadyBound("您已經綁定過學號")

        clean_id = validate_student_id(student_id)
        clean_name = validate_student_name(confirmed_name)

        result = self._bindings.claim_student(user_id=user_id, student_id=clean_id, expected_name=clean_name)
        if result == ClaimResult.USER_NOT_FOUND:
            raise Unauthenticated("請先登入")
        if result == ClaimResult.ALREADY_BOUND:
            raise AlreadyBound("您已經綁定過學號")
        if result == ClaimResult.STUDENT_NOT_FOUND:
            raise StudentNotFound("找不到此學號，請確認學號是否正確")
        if result == ClaimResult.NAME_MISMATCH:
            raise NameMismatch("學號與姓名不匹配")
        if result == ClaimResult.ALREADY_CLAIMED:
            raise AlreadyClaimed("此學號已被其他帳號綁定")

        logger.info("User %s bound to student %s", user_id, clean_id)
        return self.resolve_binding(user_id)

    def preview(self, user_id: int, student_id: str, confirmed_name: str) -> Student:
        """Read-only check shown before the user confirms the bind. Writes nothing."""
        if self.resolve_binding(user_id).bound:
            raise AlreadyBound("您已經綁定過學號")

        clean_id = validate_student_id(student_id)
        clean_name = validate_student_name(confirmed_name)

        student = self._students.get_by_student_id(clean_id)
        if not student or not student.is_active:
            raise StudentNotFound("找不到此學號，請確認學號是否正確")
        if student.name != clean_name:
            raise NameMismatch("學號與姓名不匹配")
        return student
