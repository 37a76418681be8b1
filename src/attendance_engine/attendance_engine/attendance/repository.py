from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, AttendanceType
from .model import AttendanceRecord, NewAttendanceRecord


class AttendanceRepository(Protocol):
    """Storage contract for the ledger.

    Implementations must make insert() an atomic check-and-insert on
    (student_id, attendance_date, attendance_type).
    """

    def get(self, student_id: int, attendance_date: date, attendance_type: AttendanceType) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        """Raises DuplicateSubmission when the key already exists."""

        raise NotImplementedError

    def insert_if_absent(self, record: NewAttendanceRecord) -> Optional[AttendanceRecord]:
        """Returns None (and writes nothing) when the key already exists."""

        raise NotImplementedError

    def update_status_if(
        self,
        *,
        record_id: int,
        expected: AttendanceStatus,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        """Compare-and-set; False when the stored status is no longer `expected`."""

        raise NotImplementedError

    def list_for_student(
        self,
        *,
        student_id: int,
        start_date: date,
        end_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_date(
        self,
        attendance_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_range(
        self,
        *,
        start_date: date,
        end_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
