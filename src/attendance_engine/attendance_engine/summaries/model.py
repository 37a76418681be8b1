from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..core.enums import AttendanceStatus


@dataclass
class StatusCounts:
    present: int = 0
    late: int = 0
    excused_leave: int = 0
    sick_leave: int = 0
    absent: int = 0

    def add(self, status: AttendanceStatus) -> None:
        attr = status.value.lower()
        setattr(self, attr, getattr(self, attr) + 1)

    @property
    def total(self) -> int:
        return self.present + self.late + self.excused_leave + self.sick_leave + self.absent

    @property
    def attended(self) -> int:
        """Late arrivals count as attended."""
        return self.present + self.late

    def as_dict(self) -> dict[str, int]:
        return {
            "present": self.present,
            "late": self.late,
            "excused_leave": self.excused_leave,
            "sick_leave": self.sick_leave,
            "absent": self.absent,
            "total": self.total,
        }


@dataclass(frozen=True)
class StudentSummary:
    student_id: int
    full_name: str
    class_id: int
    class_name: Optional[str]
    counts: StatusCounts
    attendance_rate: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "full_name": self.full_name,
            "class_id": self.class_id,
            "class_name": self.class_name,
            **self.counts.as_dict(),
            "attendance_rate": self.attendance_rate,
        }


@dataclass(frozen=True)
class ClassSummary:
    class_id: int
    class_name: Optional[str]
    student_count: int
    counts: StatusCounts
    attendance_rate: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "class_id": self.class_id,
            "class_name": self.class_name,
            "student_count": self.student_count,
            **self.counts.as_dict(),
            "attendance_rate": self.attendance_rate,
        }


@dataclass(frozen=True)
class PeriodSummary:
    """Read-only aggregation of CHECK_IN records over [start_date, end_date]."""

    start_date: date
    end_date: date
    expected_days: int
    totals: StatusCounts
    attendance_rate: float
    by_class: list[ClassSummary] = field(default_factory=list)
    by_student: list[StudentSummary] = field(default_factory=list)
    daily: dict[date, StatusCounts] = field(default_factory=dict)
    high_absence: list[StudentSummary] = field(default_factory=list)
    perfect_attendance: list[StudentSummary] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "expected_days": self.expected_days,
            "totals": self.totals.as_dict(),
            "attendance_rate": self.attendance_rate,
            "by_class": [c.as_dict() for c in self.by_class],
            "daily": {d.isoformat(): c.as_dict() for d, c in self.daily.items()},
            "high_absence": [s.as_dict() for s in self.high_absence],
            "perfect_attendance": [s.as_dict() for s in self.perfect_attendance],
        }


@dataclass(frozen=True)
class DailyReport:
    report_date: date
    counts: StatusCounts
    active_students: int
    by_class: list[ClassSummary] = field(default_factory=list)

    @property
    def not_recorded(self) -> int:
        return max(self.active_students - self.counts.total, 0)

    def to_payload(self) -> dict[str, Any]:
        return {
            "date": self.report_date.isoformat(),
            "summary": {**self.counts.as_dict(), "not_recorded": self.not_recorded},
            "by_class": [c.as_dict() for c in self.by_class],
        }
