from datetime import datetime, time

import pytest

from src.attendance_engine.attendance_engine.attendance.classifier import classify, classify_check_in
from src.attendance_engine.attendance_engine.attendance.model import LeaveCoverage
from src.attendance_engine.attendance_engine.core.enums import AttendanceStatus, AttendanceType, LeaveCategory
from src.attendance_engine.attendance_engine.core.exceptions import TooEarly
from src.attendance_engine.attendance_engine.settings.model import Thresholds

THRESHOLDS = Thresholds(check_in_open=time(7, 30), late_cutoff=time(8, 30), check_out_open=time(15, 30))


def _leave(label):
    return LeaveCoverage(category=LeaveCategory.from_label(label), label=label, reason="flu", request_id=7)


@pytest.mark.parametrize(
    "at, leave, expected",
    [
        (time(7, 0), None, AttendanceStatus.PRESENT),
        (time(7, 30), None, AttendanceStatus.PRESENT),
        (time(8, 0), None, AttendanceStatus.LATE),
        (time(8, 30), None, AttendanceStatus.LATE),
        (time(9, 0), None, AttendanceStatus.ABSENT),
        (time(9, 0), _leave("Sakit"), AttendanceStatus.SICK_LEAVE),
        (time(9, 0), _leave("  sAkIt "), AttendanceStatus.SICK_LEAVE),
        (time(9, 0), _leave("Izin"), AttendanceStatus.EXCUSED_LEAVE),
        (time(7, 0), _leave("Sakit"), AttendanceStatus.PRESENT),
    ],
)
def test_check_in_threshold_grid(at, leave, expected):
    assert classify_check_in(at, THRESHOLDS, leave).status == expected


def test_late_check_in_carries_note():
    decision = classify_check_in(time(8, 0), THRESHOLDS)

    assert decision.note == "Late check-in"


def test_leave_note_combines_label_and_reason():
    decision = classify_check_in(time(10, 0), THRESHOLDS, _leave("Sakit"))

    assert decision.note == "Sakit: flu"


def test_seconds_are_ignored():
    decision = classify(attendance_type=AttendanceType.CHECK_IN, at=datetime(2026, 10, 14, 8, 30, 59), thresholds=THRESHOLDS)

    assert decision.status == AttendanceStatus.LATE


def test_check_out_is_always_present():
    decision = classify(
        attendance_type=AttendanceType.CHECK_OUT,
        at=datetime(2026, 10, 14, 18, 45),
        thresholds=THRESHOLDS,
        has_check_in=True,
    )

    assert decision.status == AttendanceStatus.PRESENT


def test_check_out_too_early():
    with pytest.raises(TooEarly):
        classify(attendance_type=AttendanceType.CHECK_OUT, at=time(12, 0), thresholds=THRESHOLDS, has_check_in=True)
