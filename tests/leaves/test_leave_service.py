from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_engine.attendance_engine.core.enums import AttendanceStatus, AttendanceType, RequestStatus
from src.attendance_engine.attendance_engine.core.exceptions import (
    EvidenceRequired,
    LeaveAlreadyDecided,
    LeaveOverlap,
    LeaveRequestNotFound,
    StudentNotFound,
    ValidationError,
)


def test_create_leave_validates_range(leave_service):
    with pytest.raises(ValidationError):
        leave_service.create_leave(
            student_id=1, leave_type_id=1, start_date=date(2026, 10, 15), end_date=date(2026, 10, 14), reason="x"
        )


def test_create_leave_requires_reason(leave_service):
    with pytest.raises(ValidationError):
        leave_service.create_leave(
            student_id=1, leave_type_id=1, start_date=date(2026, 10, 14), end_date=date(2026, 10, 14), reason="  "
        )


def test_create_leave_unknown_type(leave_service):
    with pytest.raises(ValidationError):
        leave_service.create_leave(
            student_id=1, leave_type_id=9, start_date=date(2026, 10, 14), end_date=date(2026, 10, 14), reason="x"
        )


def test_create_leave_unknown_student(leave_service):
    with pytest.raises(StudentNotFound):
        leave_service.create_leave(
            student_id=42, leave_type_id=1, start_date=date(2026, 10, 14), end_date=date(2026, 10, 14), reason="x"
        )


def test_create_leave_is_pending(leave_service, leaves, notifier):
    rid = leave_service.create_leave(
        student_id=1, leave_type_id=2, start_date=date(2026, 10, 14), end_date=date(2026, 10, 16), reason="family"
    )

    assert leaves.get(rid).status == RequestStatus.PENDING
    assert [r.request_id for r in leave_service.list_pending()] == [rid]
    assert notifier.events[0][0] == "leave.created"


@pytest.mark.parametrize("status", [RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.REJECTED])
def test_create_leave_rejects_overlap_with_any_existing_request(leave_service, leaves, status):
    leaves.add(student_id=1, leave_type_id=2, start_date=date(2026, 10, 13), end_date=date(2026, 10, 15), status=status)

    with pytest.raises(LeaveOverlap):
        leave_service.create_leave(
            student_id=1, leave_type_id=2, start_date=date(2026, 10, 15), end_date=date(2026, 10, 16), reason="again"
        )
    assert len(leaves.requests) == 1


def test_create_leave_allows_adjacent_range_and_other_students(leave_service, leaves, students):
    students.add(2)
    leaves.add(student_id=1, leave_type_id=2, start_date=date(2026, 10, 13), end_date=date(2026, 10, 14))

    leave_service.create_leave(
        student_id=1, leave_type_id=2, start_date=date(2026, 10, 15), end_date=date(2026, 10, 15), reason="next day"
    )
    leave_service.create_leave(
        student_id=2, leave_type_id=2, start_date=date(2026, 10, 13), end_date=date(2026, 10, 14), reason="same days"
    )

    assert len(leaves.requests) == 3


def test_create_leave_requires_evidence_for_flagged_type(leave_service, leaves):
    with pytest.raises(EvidenceRequired):
        leave_service.create_leave(
            student_id=1, leave_type_id=3, start_date=date(2026, 10, 14), end_date=date(2026, 10, 14), reason="contest"
        )

    rid = leave_service.create_leave(
        student_id=1,
        leave_type_id=3,
        start_date=date(2026, 10, 14),
        end_date=date(2026, 10, 14),
        reason="contest",
        evidence_ref="uploads/letter.pdf",
    )
    assert leaves.get(rid).evidence_ref == "uploads/letter.pdf"


def test_approve_upgrades_absent_and_keeps_present(leave_service, leaves, ledger, clock):
    clock.set(datetime(2026, 10, 14, 10, 0))
    ledger.submit(
        student_id=1,
        attendance_date=date(2026, 10, 12),
        attendance_type=AttendanceType.CHECK_IN,
        status=AttendanceStatus.PRESENT,
        submitted_at=datetime(2026, 10, 12, 7, 0),
    )
    ledger.backfill_absent(1, date(2026, 10, 13), now=clock.now())
    rid = leaves.add(student_id=1, leave_type_id=2, start_date=date(2026, 10, 12), end_date=date(2026, 10, 20))

    result = leave_service.approve_leave(request_id=rid, admin_id=100, admin_note=" ok ")

    assert (result.created, result.upgraded, result.untouched) == (1, 1, 1)
    assert ledger.get(1, date(2026, 10, 12), AttendanceType.CHECK_IN).status == AttendanceStatus.PRESENT
    assert ledger.get(1, date(2026, 10, 13), AttendanceType.CHECK_IN).status == AttendanceStatus.EXCUSED_LEAVE
    assert ledger.get(1, date(2026, 10, 14), AttendanceType.CHECK_IN).status == AttendanceStatus.EXCUSED_LEAVE
    assert ledger.get(1, date(2026, 10, 15), AttendanceType.CHECK_IN) is None

    decided = leaves.get(rid)
    assert decided.status == RequestStatus.APPROVED
    assert decided.decided_by == 100
    assert decided.admin_note == "ok"


def test_medical_leave_maps_to_sick(leave_service, leaves, ledger):
    rid = leaves.add(student_id=1, leave_type_id=1, start_date=date(2026, 10, 13), end_date=date(2026, 10, 13))

    leave_service.approve_leave(request_id=rid)

    assert ledger.get(1, date(2026, 10, 13), AttendanceType.CHECK_IN).status == AttendanceStatus.SICK_LEAVE


def test_future_leave_creates_nothing_yet(leave_service, leaves, attendance_repo):
    rid = leaves.add(student_id=1, leave_type_id=1, start_date=date(2026, 10, 20), end_date=date(2026, 10, 21))

    result = leave_service.approve_leave(request_id=rid)

    assert (result.created, result.upgraded, result.untouched) == (0, 0, 0)
    assert attendance_repo.all() == []


def test_decisions_are_one_way(leave_service, leaves):
    rid = leaves.add(student_id=1, leave_type_id=1, start_date=date(2026, 10, 13), end_date=date(2026, 10, 13))
    leave_service.reject_leave(request_id=rid, admin_id=100, admin_note="no evidence")

    with pytest.raises(LeaveAlreadyDecided):
        leave_service.approve_leave(request_id=rid)
    with pytest.raises(LeaveAlreadyDecided):
        leave_service.reject_leave(request_id=rid)
    assert leaves.get(rid).status == RequestStatus.REJECTED


def test_unknown_request(leave_service):
    with pytest.raises(LeaveRequestNotFound):
        leave_service.approve_leave(request_id=999)


def test_reject_touches_no_attendance(leave_service, leaves, attendance_repo, notifier):
    rid = leaves.add(student_id=1, leave_type_id=2, start_date=date(2026, 10, 12), end_date=date(2026, 10, 13))

    leave_service.reject_leave(request_id=rid)

    assert attendance_repo.all() == []
    assert notifier.events[-1][0] == "leave.rejected"
