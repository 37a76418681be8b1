from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import business_days, month_range
from ..common.validators import require_date_range
from ..core.constants import MONTHLY_HIGH_ABSENCE_THRESHOLD, WEEKLY_HIGH_ABSENCE_THRESHOLD
from ..core.enums import AttendanceType
from ..students.model import Student
from ..students.repository import StudentRepository
from .calculator.base import SummaryCalculator
from .calculator.standard_calculator import StandardSummaryCalculator
from .model import ClassSummary, DailyReport, PeriodSummary, StatusCounts, StudentSummary


class SummaryService:
    """Aggregations over CHECK_IN ledger records. Never writes."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        *,
        calculator: Optional[SummaryCalculator] = None,
    ):
        self._attendance = attendance
        self._students = students
        self._calculator = calculator or StandardSummaryCalculator()

    @staticmethod
    def _count(records: Iterable[AttendanceRecord]) -> StatusCounts:
        counts = StatusCounts()
        for r in records:
            counts.add(r.status)
        return counts

    def _by_class(
        self,
        students: Sequence[Student],
        per_student: dict[int, StatusCounts],
        expected_days: int,
    ) -> list[ClassSummary]:
        grouped: dict[int, list[Student]] = defaultdict(list)
        for s in students:
            grouped[s.class_id].append(s)

        out = []
        for class_id, members in grouped.items():
            counts = StatusCounts()
            for s in members:
                c = per_student.get(s.student_id)
                if c:
                    counts.present += c.present
                    counts.late += c.late
                    counts.excused_leave += c.excused_leave
                    counts.sick_leave += c.sick_leave
                    counts.absent += c.absent
            out.append(
                ClassSummary(
                    class_id=class_id,
                    class_name=members[0].class_name,
                    student_count=len(members),
                    counts=counts,
                    attendance_rate=self._calculator.attendance_rate(counts, expected_days * len(members)),
                )
            )
        out.sort(key=lambda c: ((c.class_name or ""), c.class_id))
        return out

    def summarize(self, start_date: date, end_date: date, *, high_absence_threshold: int) -> PeriodSummary:
        require_date_range(start_date, end_date)
        expected_days = len(business_days(start_date, end_date))
        students = list(self._students.list_active())
        active_ids = {s.student_id for s in students}
        # Rows of deactivated students stay out of every count and rate.
        records = [
            r
            for r in self._attendance.list_range(
                start_date=start_date,
                end_date=end_date,
                attendance_type=AttendanceType.CHECK_IN,
            )
            if r.student_id in active_ids
        ]

        by_student_records: dict[int, list[AttendanceRecord]] = defaultdict(list)
        by_day_records: dict[date, list[AttendanceRecord]] = defaultdict(list)
        for r in records:
            by_student_records[r.student_id].append(r)
            by_day_records[r.attendance_date].append(r)

        per_student = {sid: self._count(rows) for sid, rows in by_student_records.items()}

        student_rows = []
        for s in students:
            counts = per_student.get(s.student_id) or StatusCounts()
            student_rows.append(
                StudentSummary(
                    student_id=s.student_id,
                    full_name=s.full_name,
                    class_id=s.class_id,
                    class_name=s.class_name,
                    counts=counts,
                    attendance_rate=self._calculator.attendance_rate(counts, expected_days),
                )
            )

        totals = self._count(records)
        high_absence = sorted(
            (s for s in student_rows if self._calculator.is_high_absence(s.counts, high_absence_threshold)),
            key=lambda s: (-s.counts.absent, s.full_name),
        )
        perfect = sorted(
            (s for s in student_rows if self._calculator.is_perfect(s.counts, expected_days)),
            key=lambda s: ((s.class_name or ""), s.full_name),
        )

        return PeriodSummary(
            start_date=start_date,
            end_date=end_date,
            expected_days=expected_days,
            totals=totals,
            attendance_rate=self._calculator.attendance_rate(totals, expected_days * len(students)),
            by_class=self._by_class(students, per_student, expected_days),
            by_student=student_rows,
            daily={day: self._count(by_day_records[day]) for day in sorted(by_day_records)},
            high_absence=high_absence,
            perfect_attendance=perfect,
        )

    def weekly(self, start_date: date, end_date: date) -> PeriodSummary:
        return self.summarize(start_date, end_date, high_absence_threshold=WEEKLY_HIGH_ABSENCE_THRESHOLD)

    def monthly(self, month: int, year: int) -> PeriodSummary:
        start_date, end_date = month_range(month, year)
        return self.summarize(start_date, end_date, high_absence_threshold=MONTHLY_HIGH_ABSENCE_THRESHOLD)

    def daily_report(self, report_date: date) -> DailyReport:
        records = self._attendance.list_for_date(report_date, AttendanceType.CHECK_IN)
        students = list(self._students.list_active())
        active_ids = {s.student_id for s in students}

        per_student: dict[int, StatusCounts] = defaultdict(StatusCounts)
        for r in records:
            if r.student_id in active_ids:
                per_student[r.student_id].add(r.status)

        return DailyReport(
            report_date=report_date,
            counts=self._count(r for r in records if r.student_id in active_ids),
            active_students=len(students),
            by_class=self._by_class(students, per_student, 1),
        )
