from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import business_days
from ..common.validators import require_date_range
from ..core.constants import BACKFILL_ABSENT_NOTE
from ..core.enums import AttendanceStatus, AttendanceType
from .model import AttendanceRecord, LeaveCoverage, NewAttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveUpgradeResult:
    created: int = 0
    upgraded: int = 0
    untouched: int = 0


class AttendanceLedger:
    """One record per (student, date, type), with status precedence enforced.

    Every write path goes through here:

    * live submissions use submit() (atomic create, DuplicateSubmission otherwise);
    * the sweeper uses backfill_absent() and record_leave_for_date();
    * leave approval uses upgrade_for_approved_leave().

    Precedence PRESENT/LATE > leave-derived > ABSENT: the only mutation ever
    performed is ABSENT -> leave-derived, done as a compare-and-set so a
    concurrent writer can never be downgraded.
    """

    def __init__(self, records: AttendanceRepository):
        self._records = records

    def get(self, student_id: int, attendance_date: date, attendance_type: AttendanceType) -> Optional[AttendanceRecord]:
        return self._records.get(student_id, attendance_date, attendance_type)

    def submit(
        self,
        *,
        student_id: int,
        attendance_date: date,
        attendance_type: AttendanceType,
        status: AttendanceStatus,
        submitted_at: datetime,
        location_id: Optional[int] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        photo_ref: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AttendanceRecord:
        record = self._records.insert(
            NewAttendanceRecord(
                student_id=int(student_id),
                attendance_date=attendance_date,
                attendance_type=attendance_type,
                status=status,
                submitted_at=submitted_at,
                location_id=location_id,
                latitude=latitude,
                longitude=longitude,
                photo_ref=photo_ref,
                note=note,
            )
        )
        logger.info(
            "Recorded %s %s for student %s on %s",
            attendance_type.value, status.value, student_id, attendance_date.isoformat(),
        )
        return record

    def backfill_absent(self, student_id: int, attendance_date: date, *, now: datetime) -> bool:
        """Create an ABSENT check-in if none exists; no-op otherwise."""
        created = self._records.insert_if_absent(
            NewAttendanceRecord(
                student_id=int(student_id),
                attendance_date=attendance_date,
                attendance_type=AttendanceType.CHECK_IN,
                status=AttendanceStatus.ABSENT,
                submitted_at=now,
                note=BACKFILL_ABSENT_NOTE,
            )
        )
        return created is not None

    def record_leave_for_date(
        self,
        student_id: int,
        attendance_date: date,
        leave: LeaveCoverage,
        *,
        now: datetime,
        existing: Optional[AttendanceRecord] = None,
        lookup: bool = True,
    ) -> str:
        """Apply one day of approved leave; returns 'created', 'upgraded' or 'untouched'.

        Pass lookup=False with `existing` when the caller already batch-fetched
        the day's record (None meaning no record).
        """
        if lookup and existing is None:
            existing = self._records.get(student_id, attendance_date, AttendanceType.CHECK_IN)

        if existing is None:
            created = self._records.insert_if_absent(
                NewAttendanceRecord(
                    student_id=int(student_id),
                    attendance_date=attendance_date,
                    attendance_type=AttendanceType.CHECK_IN,
                    status=leave.status,
                    submitted_at=now,
                    note=leave.note,
                )
            )
            if created is not None:
                return "created"
            # Lost a race with another writer: re-read and fall through to the precedence rule.
            existing = self._records.get(student_id, attendance_date, AttendanceType.CHECK_IN)
            if existing is None:
                return "untouched"

        if leave.status.rank > existing.status.rank:
            if self._records.update_status_if(
                record_id=existing.record_id,
                expected=existing.status,
                status=leave.status,
                note=leave.note,
            ):
                return "upgraded"
        return "untouched"

    def upgrade_for_approved_leave(
        self,
        student_id: int,
        start_date: date,
        end_date: date,
        leave: LeaveCoverage,
        *,
        now: datetime,
    ) -> LeaveUpgradeResult:
        """Reconcile an approved leave over its date range.

        Only business days up to today are materialized; later days are
        picked up by the end-of-day sweep once they have passed.
        """
        require_date_range(start_date, end_date)
        last_day = min(end_date, now.date())
        if last_day < start_date:
            return LeaveUpgradeResult()

        existing = {
            r.attendance_date: r
            for r in self._records.list_for_student(
                student_id=student_id,
                start_date=start_date,
                end_date=last_day,
                attendance_type=AttendanceType.CHECK_IN,
            )
        }

        counts = {"created": 0, "upgraded": 0, "untouched": 0}
        for day in business_days(start_date, last_day):
            outcome = self.record_leave_for_date(student_id, day, leave, now=now, existing=existing.get(day), lookup=False)
            counts[outcome] += 1

        result = LeaveUpgradeResult(**counts)
        logger.info(
            "Leave %s for student %s (%s..%s): %s",
            leave.request_id, student_id, start_date.isoformat(), end_date.isoformat(), result,
        )
        return result

    def list_for_date(self, attendance_date: date) -> Sequence[AttendanceRecord]:
        return self._records.list_for_date(attendance_date, AttendanceType.CHECK_IN)
