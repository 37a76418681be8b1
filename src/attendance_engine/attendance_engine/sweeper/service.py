"""Scheduled reconciliation.

Every job here is safe to re-run: backfill is insert-if-absent, the leave
upgrade is a compare-and-set on ABSENT, and expiry is a conditional update on
PENDING. A failure on one student or request is logged and counted; the
batch always runs to completion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..attendance.ledger import AttendanceLedger
from ..common.datetime_utils import Clock, SystemClock, is_weekend, previous_month, week_range
from ..common.validators import require_date_range
from ..core.constants import EXPIRED_LEAVE_NOTE
from ..core.enums import RequestStatus
from ..core.exceptions import ValidationError
from ..leaves.model import LeaveRequest
from ..leaves.repository import LeaveRequestRepository
from ..notifications.notifier import Events, Notifier, safe_emit
from ..students.repository import StudentRepository
from ..summaries.model import DailyReport, PeriodSummary
from ..summaries.service import SummaryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndOfDayResult:
    sweep_date: date
    skipped_weekend: bool = False
    students: int = 0
    backfilled_absent: int = 0
    leave_created: int = 0
    leave_upgraded: int = 0
    already_recorded: int = 0
    failed: int = 0


@dataclass(frozen=True)
class LeaveExpiryResult:
    today: date
    candidates: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass(frozen=True)
class CheckInReminderResult:
    reminder_date: date
    skipped_weekend: bool = False
    active_students: int = 0
    reminded: tuple[int, ...] = ()


class ReconciliationSweeper:
    def __init__(
        self,
        ledger: AttendanceLedger,
        students: StudentRepository,
        leaves: LeaveRequestRepository,
        summaries: SummaryService,
        *,
        clock: Optional[Clock] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._ledger = ledger
        self._students = students
        self._leaves = leaves
        self._summaries = summaries
        self._clock = clock or SystemClock()
        self._notifier = notifier

    def _today(self) -> date:
        return self._clock.now().date()

    # -------- End of day --------
    def run_end_of_day_sweep(self, sweep_date: Optional[date] = None) -> EndOfDayResult:
        """Give every active student a CHECK_IN record for sweep_date (default: yesterday)."""
        today = self._today()
        sweep_date = sweep_date or today - timedelta(days=1)
        if sweep_date > today:
            raise ValidationError(f"Cannot sweep a future date: {sweep_date.isoformat()}")
        if is_weekend(sweep_date):
            logger.info("End-of-day sweep skipped for weekend %s", sweep_date.isoformat())
            return EndOfDayResult(sweep_date=sweep_date, skipped_weekend=True)

        logger.info("End-of-day sweep started for %s", sweep_date.isoformat())
        now = self._clock.now()
        students = list(self._students.list_active())
        existing = {r.student_id: r for r in self._ledger.list_for_date(sweep_date)}

        covering: dict[int, LeaveRequest] = {}
        for req in self._leaves.list_approved_covering(sweep_date):
            covering.setdefault(req.student_id, req)

        counts = {"backfilled_absent": 0, "leave_created": 0, "leave_upgraded": 0, "already_recorded": 0, "failed": 0}
        for student in students:
            sid = student.student_id
            record = existing.get(sid)
            leave = covering.get(sid)
            try:
                coverage = leave.coverage() if leave is not None else None
                if coverage is not None and (record is None or coverage.status.rank > record.status.rank):
                    outcome = self._ledger.record_leave_for_date(
                        sid, sweep_date, coverage, now=now, existing=record, lookup=False
                    )
                    if outcome == "created":
                        counts["leave_created"] += 1
                    elif outcome == "upgraded":
                        counts["leave_upgraded"] += 1
                    else:
                        counts["already_recorded"] += 1
                elif record is None:
                    if self._ledger.backfill_absent(sid, sweep_date, now=now):
                        counts["backfilled_absent"] += 1
                    else:
                        counts["already_recorded"] += 1
                else:
                    counts["already_recorded"] += 1
            except Exception:
                counts["failed"] += 1
                logger.exception("End-of-day sweep failed for student %s on %s", sid, sweep_date.isoformat())

        result = EndOfDayResult(sweep_date=sweep_date, students=len(students), **counts)
        logger.info("End-of-day sweep finished: %s", result)
        return result

    # -------- Leave expiry --------
    def run_leave_expiry_sweep(self, today: Optional[date] = None) -> LeaveExpiryResult:
        """Reject every PENDING request whose end date has passed without a decision."""
        today = today or self._today()
        candidates = list(self._leaves.list_pending_ended_before(today))
        logger.info("Leave expiry sweep started for %s (%d candidates)", today.isoformat(), len(candidates))

        expired = skipped = failed = 0
        for req in candidates:
            try:
                ok = self._leaves.decide(
                    request_id=req.request_id,
                    status=RequestStatus.REJECTED,
                    decided_by=None,
                    decided_at=self._clock.now(),
                    admin_note=EXPIRED_LEAVE_NOTE,
                )
            except Exception:
                failed += 1
                logger.exception("Could not expire leave request %s", req.request_id)
                continue

            if not ok:
                # Decided by an admin since the listing.
                skipped += 1
                continue
            expired += 1
            safe_emit(
                self._notifier,
                Events.LEAVE_EXPIRED,
                {"request_id": req.request_id, "student_id": req.student_id, "end_date": req.end_date.isoformat()},
            )

        result = LeaveExpiryResult(today=today, candidates=len(candidates), expired=expired, skipped=skipped, failed=failed)
        logger.info("Leave expiry sweep finished: %s", result)
        return result

    # -------- Reminders --------
    def run_check_in_reminder(self, reminder_date: Optional[date] = None) -> CheckInReminderResult:
        """Notify about active students with no CHECK_IN yet on reminder_date (default: today)."""
        reminder_date = reminder_date or self._today()
        if is_weekend(reminder_date):
            return CheckInReminderResult(reminder_date=reminder_date, skipped_weekend=True)

        students = list(self._students.list_active())
        recorded = {r.student_id for r in self._ledger.list_for_date(reminder_date)}
        missing = tuple(sorted(s.student_id for s in students if s.student_id not in recorded))

        if missing:
            safe_emit(
                self._notifier,
                Events.CHECK_IN_REMINDER,
                {"date": reminder_date.isoformat(), "student_ids": list(missing)},
            )
        result = CheckInReminderResult(
            reminder_date=reminder_date, active_students=len(students), reminded=missing
        )
        logger.info("Check-in reminder for %s: %d of %d students", reminder_date.isoformat(), len(missing), len(students))
        return result

    # -------- Summaries --------
    def run_weekly_summary(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> PeriodSummary:
        if start_date is None or end_date is None:
            start_date, end_date = week_range(self._today())
        require_date_range(start_date, end_date)

        summary = self._summaries.weekly(start_date, end_date)
        logger.info(
            "Weekly summary %s..%s: %s, rate %.0f%%, %d high absence",
            start_date.isoformat(), end_date.isoformat(), summary.totals.as_dict(),
            summary.attendance_rate, len(summary.high_absence),
        )
        safe_emit(self._notifier, Events.WEEKLY_SUMMARY, summary.to_payload())
        return summary

    def run_monthly_summary(self, month: Optional[int] = None, year: Optional[int] = None) -> PeriodSummary:
        if month is None or year is None:
            month, year = previous_month(self._today())
        if not 1 <= int(month) <= 12:
            raise ValidationError(f"month must be between 1 and 12, got {month}")

        summary = self._summaries.monthly(int(month), int(year))
        logger.info(
            "Monthly summary %04d-%02d: %s, rate %.0f%%, %d perfect, %d high absence",
            int(year), int(month), summary.totals.as_dict(), summary.attendance_rate,
            len(summary.perfect_attendance), len(summary.high_absence),
        )
        safe_emit(self._notifier, Events.MONTHLY_SUMMARY, summary.to_payload())
        return summary

    def run_daily_report(self, report_date: Optional[date] = None) -> DailyReport:
        report_date = report_date or self._today()
        report = self._summaries.daily_report(report_date)
        logger.info(
            "Daily report %s: %s, %d not recorded",
            report_date.isoformat(), report.counts.as_dict(), report.not_recorded,
        )
        safe_emit(self._notifier, Events.DAILY_REPORT, report.to_payload())
        return report
