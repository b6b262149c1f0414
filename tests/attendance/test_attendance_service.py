from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

import pytest

from campus_attendance.attendance.model import AttendanceRecord, AttendanceStats
from campus_attendance.attendance.service import AttendanceService, default_notes
from campus_attendance.binding.model import Binding
from campus_attendance.core.enums import AttendanceStatus
from campus_attendance.core.exceptions import BindingRequired, DuplicateCheckIn, InvalidLocation, ValidationError


class FixedBindings:
    def __init__(self, bound: dict[int, str]):
        self._bound = bound

    def resolve_binding(self, user_id: int) -> Binding:
        student_id = self._bound.get(user_id)
        return Binding(bound=student_id is not None, student_id=student_id)


class InMemoryAttendance:
    def __init__(self):
        self.records: list[AttendanceRecord] = []
        self.skip_precheck = False

    def has_record_on(self, user_id: int, check_in_date: date) -> bool:
        if self.skip_precheck:
            return False
        return any(r.user_id == user_id and r.check_in_date == check_in_date for r in self.records)

    def create_checkin(self, *, user_id, student_id, latitude, longitude, accuracy, timestamp, check_in_date, status,
                       course_id=None, device_info=None, ip_address=None, notes=None) -> Optional[AttendanceRecord]:
        if any(r.user_id == user_id and r.check_in_date == check_in_date for r in self.records):
            return None
        rec = AttendanceRecord(
            id=len(self.records) + 1,
            user_id=user_id,
            student_id=student_id,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            timestamp=timestamp,
            check_in_date=check_in_date,
            status=status,
            course_id=course_id,
            device_info=device_info,
            ip_address=ip_address,
            notes=notes,
        )
        self.records.append(rec)
        return rec

    def get_stats(self, user_id: int, *, today: date, week_start: date) -> AttendanceStats:
        mine = [r for r in self.records if r.user_id == user_id]
        accs = [r.accuracy for r in mine if r.accuracy is not None]
        return AttendanceStats(
            total_records=len(mine),
            present_count=sum(r.status == AttendanceStatus.PRESENT for r in mine),
            today_records=sum(r.check_in_date == today for r in mine),
            this_week_records=sum(r.check_in_date >= week_start for r in mine),
            average_accuracy_meters=sum(accs) / len(accs) if accs else 0.0,
        )

    def update_status(self, record_id: int, *, status, notes=None) -> bool:
        for i, r in enumerate(self.records):
            if r.id == record_id:
                self.records[i] = replace(r, status=status, notes=notes or r.notes)
                return True
        return False


@pytest.fixture
def repo():
    return InMemoryAttendance()


@pytest.fixture
def service(repo):
    return AttendanceService(repo, FixedBindings({1: "123456"}))


def test_record_present_with_default_notes(service, fixed_now):
    rec = service.record(1, "123456", 25.0174, 121.5398, 50, now=fixed_now)

    assert rec.status == AttendanceStatus.PRESENT
    assert rec.check_in_date == fixed_now.date()
    assert rec.student_id == "123456"
    assert rec.notes == "GPS點名 - 準確度: 50公尺"
    assert rec.timestamp.tzinfo is not None


def test_student_id_is_optional_and_taken_from_binding(service, fixed_now):
    rec = service.record(1, None, 25.0, 121.5, 8.4, now=fixed_now)
    assert rec.student_id == "123456"


def test_binding_required_regardless_of_location(service, fixed_now):
    for lat, lng in [(25.0, 121.5), (None, None), (float("nan"), 0.0)]:
        with pytest.raises(BindingRequired):
            service.record(2, None, lat, lng, 10, now=fixed_now)


def test_mismatched_student_id_counts_as_unbound(service, fixed_now):
    with pytest.raises(BindingRequired):
        service.record(1, "234567", 25.0, 121.5, 10, now=fixed_now)


def test_invalid_location_checked_after_binding(service, repo, fixed_now):
    with pytest.raises(InvalidLocation):
        service.record(1, "123456", None, 121.5, 10, now=fixed_now)
    with pytest.raises(InvalidLocation):
        service.record(1, "123456", 25.0, float("inf"), 10, now=fixed_now)
    assert repo.records == []


def test_duplicate_same_day_then_success_next_day(service, repo, fixed_now):
    service.record(1, "123456", 25.0174, 121.5398, 50, now=fixed_now)

    with pytest.raises(DuplicateCheckIn):
        service.record(1, "123456", 24.0, 120.0, 5, now=fixed_now.replace(hour=23, minute=59))

    nxt = service.record(1, "123456", 25.0174, 121.5398, 12, now=fixed_now + timedelta(days=1))
    assert nxt.check_in_date == date(2025, 3, 11)
    assert len(repo.records) == 2


def test_lost_insert_race_is_reported_as_duplicate(service, repo, fixed_now):
    service.record(1, "123456", 25.0, 121.5, 10, now=fixed_now)
    repo.skip_precheck = True

    with pytest.raises(DuplicateCheckIn):
        service.record(1, "123456", 25.0, 121.5, 10, now=fixed_now)
    assert len(repo.records) == 1


def test_stats_zero_records(service, fixed_now):
    stats = service.stats(1, now=fixed_now)
    assert stats == AttendanceStats()
    assert stats.average_accuracy_meters == 0


def test_stats_after_checkins(service, fixed_now):
    service.record(1, "123456", 25.0, 121.5, 10, now=fixed_now - timedelta(days=10))
    service.record(1, "123456", 25.0, 121.5, 20, now=fixed_now - timedelta(days=3))
    service.record(1, "123456", 25.0, 121.5, None, now=fixed_now)

    stats = service.stats(1, now=fixed_now)

    assert stats.total_records == 3
    assert stats.present_count == 3
    assert stats.today_records == 1
    assert stats.this_week_records == 2
    assert stats.average_accuracy_meters == pytest.approx(15.0)


def test_default_notes_round_half_up():
    assert default_notes(12.5) == "GPS點名 - 準確度: 13公尺"
    assert default_notes(12.4) == "GPS點名 - 準確度: 12公尺"
    assert default_notes(None) == "GPS點名"


def test_update_status_validates(service, fixed_now):
    rec = service.record(1, "123456", 25.0, 121.5, 10, now=fixed_now)

    service.update_status(rec.id, "late", "遲到 10 分鐘")

    with pytest.raises(ValidationError):
        service.update_status(rec.id, "on_leave")
    with pytest.raises(ValidationError):
        service.update_status(999, "absent")
