from __future__ import annotations

import math
from datetime import date, datetime

import pytest

from src.attendance_engine.attendance_engine.attendance.service import AttendanceService
from src.attendance_engine.attendance_engine.core.constants import EARTH_RADIUS_M
from src.attendance_engine.attendance_engine.core.enums import AttendanceStatus, AttendanceType, RequestStatus
from src.attendance_engine.attendance_engine.core.exceptions import (
    DuplicateSubmission,
    FaceMismatch,
    FaceNotEnrolled,
    MissingCheckIn,
    NoLocationConfigured,
    OutOfRange,
    StudentNotFound,
    TooEarly,
    ValidationError,
    VerifierTimeout,
)
from src.attendance_engine.attendance_engine.face.verifier import FaceMatch
from src.attendance_engine.attendance_engine.locations.model import Coordinate


def _north_of_school(meters):
    return Coordinate(latitude=-6.2 + math.degrees(meters / EARTH_RADIUS_M), longitude=106.8)


NEAR = _north_of_school(40)
FAR = _north_of_school(1000)


def _new_probe(tmp_path, name):
    path = tmp_path / name
    path.write_bytes(b"jpeg")
    return path


def test_late_check_in_then_duplicate(attendance_service, clock, probe, tmp_path, verifier, attendance_repo):
    clock.set(datetime(2026, 10, 14, 8, 0))

    record = attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert record.status == AttendanceStatus.LATE
    assert record.note == "Late check-in"
    assert record.location_id == 1
    assert record.photo_ref == str(probe)
    assert probe.exists()

    second = _new_probe(tmp_path, "second.jpg")
    with pytest.raises(DuplicateSubmission):
        attendance_service.submit_attendance(1, "CHECK_IN", NEAR, str(second))

    assert not second.exists()
    assert len(verifier.calls) == 1
    assert len(attendance_repo.all()) == 1


def test_on_time_check_in_emits_event(attendance_service, probe, notifier):
    record = attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, (NEAR.latitude, NEAR.longitude), str(probe))

    assert record.status == AttendanceStatus.PRESENT
    assert notifier.events[0][0] == "attendance.recorded"
    assert notifier.events[0][1]["status"] == "PRESENT"


def test_out_of_range_rejects_before_face_check(attendance_service, probe, verifier, attendance_repo):
    with pytest.raises(OutOfRange) as exc_info:
        attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, FAR, str(probe))

    assert exc_info.value.distance_m == pytest.approx(1000, abs=1)
    assert exc_info.value.radius_m == 50
    assert exc_info.value.tolerance_m == 100
    assert verifier.calls == []
    assert not probe.exists()
    assert attendance_repo.all() == []


def test_face_mismatch_deletes_probe(attendance_service, probe, verifier, attendance_repo):
    verifier.result = FaceMatch(is_match=False, score=0.3)

    with pytest.raises(FaceMismatch) as exc_info:
        attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert exc_info.value.score == 0.3
    assert not probe.exists()
    assert attendance_repo.all() == []


def test_verifier_timeout_deletes_probe(attendance_service, probe, verifier, attendance_repo):
    verifier.error = VerifierTimeout("too slow")

    with pytest.raises(VerifierTimeout):
        attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert not probe.exists()
    assert attendance_repo.all() == []


def test_cancellation_deletes_probe(attendance_service, probe, verifier, attendance_repo):
    verifier.error = KeyboardInterrupt()

    with pytest.raises(KeyboardInterrupt):
        attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert not probe.exists()
    assert attendance_repo.all() == []


def test_invalid_coordinate_is_validation_error(attendance_service, probe):
    with pytest.raises(ValidationError):
        attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, ("abc", 106.8), str(probe))

    assert not probe.exists()


def test_missing_probe_path_is_validation_error(attendance_service):
    with pytest.raises(ValidationError):
        attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, "")


def test_unknown_attendance_type_is_validation_error(attendance_service, probe):
    with pytest.raises(ValidationError):
        attendance_service.submit_attendance(1, "LUNCH", NEAR, str(probe))


def test_unknown_student(attendance_service, probe):
    with pytest.raises(StudentNotFound):
        attendance_service.submit_attendance(99, AttendanceType.CHECK_IN, NEAR, str(probe))


def test_student_without_template(attendance_service, students, probe):
    students.add(2, template=None)

    with pytest.raises(FaceNotEnrolled):
        attendance_service.submit_attendance(2, AttendanceType.CHECK_IN, NEAR, str(probe))


def test_class_without_locations(attendance_service, students, probe):
    students.add(3, class_id=77)

    with pytest.raises(NoLocationConfigured):
        attendance_service.submit_attendance(3, AttendanceType.CHECK_IN, NEAR, str(probe))


def test_check_out_requires_check_in(attendance_service, clock, probe, verifier):
    clock.set(datetime(2026, 10, 14, 16, 0))

    with pytest.raises(MissingCheckIn):
        attendance_service.submit_attendance(1, AttendanceType.CHECK_OUT, NEAR, str(probe))

    assert verifier.calls == []


def test_check_out_before_window(attendance_service, clock, probe, tmp_path):
    attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))
    clock.set(datetime(2026, 10, 14, 12, 0))

    with pytest.raises(TooEarly):
        attendance_service.submit_attendance(1, AttendanceType.CHECK_OUT, NEAR, str(_new_probe(tmp_path, "out.jpg")))


def test_check_out_after_window_is_present(attendance_service, clock, probe, tmp_path):
    clock.set(datetime(2026, 10, 14, 8, 20))
    attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))
    clock.set(datetime(2026, 10, 14, 16, 0))

    record = attendance_service.submit_attendance(1, AttendanceType.CHECK_OUT, NEAR, str(_new_probe(tmp_path, "out.jpg")))

    assert record.attendance_type == AttendanceType.CHECK_OUT
    assert record.status == AttendanceStatus.PRESENT


def test_after_cutoff_with_approved_sick_leave(attendance_service, clock, leaves, probe):
    leaves.add(
        student_id=1,
        leave_type_id=1,
        start_date=date(2026, 10, 13),
        end_date=date(2026, 10, 15),
        reason="fever",
        status=RequestStatus.APPROVED,
    )
    clock.set(datetime(2026, 10, 14, 9, 0))

    record = attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert record.status == AttendanceStatus.SICK_LEAVE
    assert record.note == "Sakit: fever"


def test_after_cutoff_without_leave_is_absent(attendance_service, clock, probe):
    clock.set(datetime(2026, 10, 14, 9, 0))

    record = attendance_service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert record.status == AttendanceStatus.ABSENT


def test_notifier_failure_does_not_fail_submission(
    ledger, students, locations, leaves, settings_service, verifier, clock, probe
):
    class BrokenNotifier:
        def emit(self, event, payload):
            raise ConnectionError("down")

    service = AttendanceService(
        ledger, students, locations, leaves, settings_service, lambda s: verifier, clock=clock, notifier=BrokenNotifier()
    )

    record = service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert record.status == AttendanceStatus.PRESENT
    assert probe.exists()


def test_photo_ref_is_relative_to_upload_root(
    ledger, students, locations, leaves, settings_service, verifier, clock, tmp_path
):
    upload_root = tmp_path / "uploads"
    (upload_root / "2026").mkdir(parents=True)
    probe = upload_root / "2026" / "p.jpg"
    probe.write_bytes(b"jpeg")
    service = AttendanceService(
        ledger, students, locations, leaves, settings_service, lambda s: verifier, clock=clock,
        upload_root=str(upload_root),
    )

    record = service.submit_attendance(1, AttendanceType.CHECK_IN, NEAR, str(probe))

    assert record.photo_ref == "2026/p.jpg"
