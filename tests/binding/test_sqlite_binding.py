from __future__ import annotations

import threading

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from campus_attendance.binding.model import ClaimResult
from campus_attendance.core.enums import BindingStatus
from campus_attendance.core.exceptions import AlreadyBound, AlreadyClaimed, NameMismatch


def test_bind_then_retry_reports_already_bound(container, make_user):
    user_id = make_user()

    binding = container.binding_service.bind(user_id, "123456", "王小明")
    assert binding.bound is True
    assert binding.student.department == "資訊工程系"

    with pytest.raises(AlreadyBound):
        container.binding_service.bind(user_id, "123456", "王小明")


def test_name_mismatch_leaves_user_row_untouched(container, make_user):
    user_id = make_user()
    before = container.users_repo.get_by_id(user_id)

    with pytest.raises(NameMismatch):
        container.binding_service.bind(user_id, "123456", "李四")

    after = container.users_repo.get_by_id(user_id)
    assert after == before
    assert after.binding_status == BindingStatus.UNBOUND
    assert after.student_id is None


def test_concurrent_binds_of_one_student_have_single_winner(container, make_user):
    user_ids = [make_user(), make_user()]
    barrier = threading.Barrier(len(user_ids))
    outcomes = {}

    def attempt(uid: int) -> None:
        barrier.wait()
        try:
            container.binding_service.bind(uid, "234567", "李小華")
            outcomes[uid] = "bound"
        except AlreadyClaimed:
            outcomes[uid] = "claimed"

    threads = [threading.Thread(target=attempt, args=(uid,)) for uid in user_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes.values()) == ["bound", "claimed"]
    holders = [uid for uid in user_ids if container.binding_service.resolve_binding(uid).bound]
    assert len(holders) == 1


def test_bound_student_unique_index_rejects_direct_double_claim(container, database, make_user):
    first, second = make_user(), make_user()
    container.binding_service.bind(first, "345678", "張小美")

    with pytest.raises(IntegrityError):
        with database.transaction() as conn:
            conn.execute(
                text("UPDATE users SET student_id = '345678', binding_status = 'bound' WHERE id = :id"),
                {"id": second},
            )


def test_claim_against_inactive_user_is_reported(container, make_user):
    user_id = make_user()
    container.user_service.deactivate(user_id)

    assert (
        container.bindings_repo.claim_student(user_id=user_id, student_id="123456", expected_name="王小明")
        == ClaimResult.USER_NOT_FOUND
    )
