from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, AttendanceType, LeaveCategory


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi điểm danh.

    Khoá duy nhất: (student_id, attendance_date, attendance_type).
    """

    record_id: int
    student_id: int
    attendance_date: date
    attendance_type: AttendanceType
    status: AttendanceStatus
    submitted_at: datetime
    location_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photo_ref: Optional[str] = None
    note: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> tuple[int, date, AttendanceType]:
        return (self.student_id, self.attendance_date, self.attendance_type)

    @property
    def is_live(self) -> bool:
        """Created by a live submission (carries location + coordinate)."""
        return self.location_id is not None


@dataclass(frozen=True)
class NewAttendanceRecord:
    """Write model handed to the repository (no id yet)."""

    student_id: int
    attendance_date: date
    attendance_type: AttendanceType
    status: AttendanceStatus
    submitted_at: datetime
    location_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photo_ref: Optional[str] = None
    note: Optional[str] = None

    @property
    def key(self) -> tuple[int, date, AttendanceType]:
        return (self.student_id, self.attendance_date, self.attendance_type)


@dataclass(frozen=True)
class LeaveCoverage:
    """An approved leave covering a given date."""

    category: LeaveCategory
    label: str
    reason: str = ""
    request_id: Optional[int] = None

    @property
    def status(self) -> AttendanceStatus:
        return self.category.to_status()

    @property
    def note(self) -> str:
        return f"{self.label}: {self.reason}" if self.reason else self.label
