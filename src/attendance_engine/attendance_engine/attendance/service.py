from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Union

from ..common.datetime_utils import Clock, SystemClock, minute_of_day
from ..core.enums import AttendanceType
from ..core.exceptions import (
    DomainRejection,
    DuplicateSubmission,
    FaceMismatch,
    FaceNotEnrolled,
    StudentNotFound,
    ValidationError,
)
from ..face.artifacts import probe_artifact
from ..face.verifier import FaceVerifier
from ..leaves.repository import LeaveRequestRepository
from ..locations.geofence import GeofenceResolver
from ..locations.model import Coordinate
from ..locations.repository import LocationRepository
from ..notifications.notifier import Events, Notifier, safe_emit
from ..settings.model import AttendanceSettings
from ..settings.service import SettingsService
from ..students.repository import StudentRepository
from .classifier import classify
from .ledger import AttendanceLedger
from .model import AttendanceRecord, LeaveCoverage

logger = logging.getLogger(__name__)

CoordinateInput = Union[Coordinate, Sequence[float]]


class AttendanceService:
    """Live submission pipeline.

    geofence -> face verification -> classification -> ledger write -> notify.
    Nothing is written before the face check passes, and the probe image only
    survives when the ledger write succeeds.
    """

    def __init__(
        self,
        ledger: AttendanceLedger,
        students: StudentRepository,
        locations: LocationRepository,
        leaves: LeaveRequestRepository,
        settings: SettingsService,
        verifiers: Callable[[AttendanceSettings], FaceVerifier],
        *,
        clock: Optional[Clock] = None,
        notifier: Optional[Notifier] = None,
        upload_root: Optional[str] = None,
    ):
        self._ledger = ledger
        self._students = students
        self._locations = locations
        self._leaves = leaves
        self._settings = settings
        self._verifiers = verifiers
        self._clock = clock or SystemClock()
        self._notifier = notifier
        self._upload_root = upload_root

    @staticmethod
    def _parse_type(value: Union[AttendanceType, str]) -> AttendanceType:
        try:
            return AttendanceType(value)
        except ValueError:
            raise ValidationError(f"Unknown attendance type: {value!r}")

    @staticmethod
    def _parse_coordinate(value: CoordinateInput) -> Coordinate:
        if isinstance(value, Coordinate):
            return Coordinate.parse(value.latitude, value.longitude)
        try:
            latitude, longitude = value
        except (TypeError, ValueError):
            raise ValidationError("coordinate must be a (latitude, longitude) pair")
        return Coordinate.parse(latitude, longitude)

    def submit_attendance(
        self,
        student_id: int,
        attendance_type: Union[AttendanceType, str],
        coordinate: CoordinateInput,
        probe_image_path: str,
    ) -> AttendanceRecord:
        if not probe_image_path:
            raise ValidationError("Probe photo is required")

        with probe_artifact(probe_image_path, upload_root=self._upload_root) as artifact:
            try:
                record = self._submit(student_id, attendance_type, coordinate, artifact)
            except DomainRejection as exc:
                logger.warning("Submission rejected for student %s: %s (%s)", student_id, exc, exc.reason)
                raise
            artifact.keep()

        safe_emit(
            self._notifier,
            Events.ATTENDANCE_RECORDED,
            {
                "record_id": record.record_id,
                "student_id": record.student_id,
                "attendance_date": record.attendance_date.isoformat(),
                "attendance_type": record.attendance_type.value,
                "status": record.status.value,
            },
        )
        return record

    def _submit(self, student_id, attendance_type, coordinate, artifact) -> AttendanceRecord:
        kind = self._parse_type(attendance_type)
        probe = self._parse_coordinate(coordinate)

        now = self._clock.now()
        today = now.date()

        student = self._students.get_by_id(int(student_id))
        if not student or not student.is_active:
            raise StudentNotFound(f"Student {student_id} not found")
        if not student.has_template:
            raise FaceNotEnrolled("No face template is enrolled for this student")

        settings = self._settings.load()
        thresholds = settings.thresholds

        # Fast path only; the ledger insert is the authoritative uniqueness check.
        if self._ledger.get(student.student_id, today, kind):
            raise DuplicateSubmission(f"{kind.value} already recorded for {today.isoformat()}")

        has_check_in = False
        if kind is AttendanceType.CHECK_OUT:
            has_check_in = self._ledger.get(student.student_id, today, AttendanceType.CHECK_IN) is not None
            # Raises MissingCheckIn / TooEarly before any geofence or face work.
            classify(attendance_type=kind, at=now, thresholds=thresholds, has_check_in=has_check_in)

        resolver = GeofenceResolver(tolerance_m=settings.geofence_tolerance_m)
        match = resolver.resolve(probe, self._locations.list_for_class(student.class_id))

        face = self._verifiers(settings).verify(artifact.path, student.face_template)
        if not face.is_match:
            raise FaceMismatch(f"Face does not match the enrolled template (score {face.score:.2f})", score=face.score)

        leave: Optional[LeaveCoverage] = None
        if kind is AttendanceType.CHECK_IN and minute_of_day(now) > minute_of_day(thresholds.late_cutoff):
            covering = self._leaves.find_approved_covering(student.student_id, today)
            leave = covering.coverage() if covering else None

        decision = classify(
            attendance_type=kind,
            at=now,
            thresholds=thresholds,
            leave=leave,
            has_check_in=has_check_in,
        )

        record = self._ledger.submit(
            student_id=student.student_id,
            attendance_date=today,
            attendance_type=kind,
            status=decision.status,
            submitted_at=now,
            location_id=match.location.location_id,
            latitude=probe.latitude,
            longitude=probe.longitude,
            photo_ref=artifact.ref,
            note=decision.note,
        )
        logger.info(
            "Student %s %s at %s: %s (location=%s, %dm, face score %.2f)",
            student.student_id, kind.value, now.strftime("%H:%M"), decision.status.value,
            match.location.name, match.distance_m, face.score,
        )
        return record
