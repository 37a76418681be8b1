from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.ledger import AttendanceLedger
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import Clock, SystemClock
from .core.constants import DEFAULT_FACE_MATCH_THRESHOLD
from .database.connection import DBConfig, DatabaseConnection
from .face.service import FaceEnrollmentService
from .face.verifier import FaceRecognitionVerifier, FaceVerifierProvider
from .leaves.mysql_leave_repository import MySQLLeaveRequestRepository
from .leaves.service import LeaveService
from .locations.mysql_location_repository import MySQLLocationRepository
from .notifications.notifier import LoggingNotifier, Notifier
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.service import SettingsService
from .students.mysql_student_repository import MySQLStudentRepository
from .summaries.service import SummaryService
from .sweeper.service import ReconciliationSweeper


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    students_repo: MySQLStudentRepository
    locations_repo: MySQLLocationRepository
    attendance_repo: MySQLAttendanceRepository
    leaves_repo: MySQLLeaveRequestRepository
    settings_repo: MySQLSettingsRepository

    ledger: AttendanceLedger
    verifiers: FaceVerifierProvider
    notifier: Notifier

    settings_service: SettingsService
    attendance_service: AttendanceService
    leave_service: LeaveService
    summary_service: SummaryService
    enrollment_service: FaceEnrollmentService
    sweeper: ReconciliationSweeper


def build_container(
    *,
    db_config: dict,
    upload_root: Optional[str] = None,
    clock: Optional[Clock] = None,
    notifier: Optional[Notifier] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    clock = clock or SystemClock()
    notifier = notifier or LoggingNotifier()

    students_repo = MySQLStudentRepository(conn)
    locations_repo = MySQLLocationRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    leaves_repo = MySQLLeaveRequestRepository(conn)
    settings_repo = MySQLSettingsRepository(conn)

    ledger = AttendanceLedger(attendance_repo)
    verifiers = FaceVerifierProvider()

    settings_service = SettingsService(settings_repo)
    attendance_service = AttendanceService(
        ledger,
        students_repo,
        locations_repo,
        leaves_repo,
        settings_service,
        verifiers,
        clock=clock,
        notifier=notifier,
        upload_root=upload_root,
    )
    leave_service = LeaveService(leaves_repo, students_repo, ledger, clock=clock, notifier=notifier)
    summary_service = SummaryService(attendance_repo, students_repo)
    enrollment_service = FaceEnrollmentService(
        students_repo,
        FaceRecognitionVerifier(threshold=DEFAULT_FACE_MATCH_THRESHOLD),
        upload_root=upload_root,
    )
    sweeper = ReconciliationSweeper(
        ledger,
        students_repo,
        leaves_repo,
        summary_service,
        clock=clock,
        notifier=notifier,
    )

    return Container(
        conn=conn,
        students_repo=students_repo,
        locations_repo=locations_repo,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        settings_repo=settings_repo,
        ledger=ledger,
        verifiers=verifiers,
        notifier=notifier,
        settings_service=settings_service,
        attendance_service=attendance_service,
        leave_service=leave_service,
        summary_service=summary_service,
        enrollment_service=enrollment_service,
        sweeper=sweeper,
    )
