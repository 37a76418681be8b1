from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..attendance.model import LeaveCoverage
from ..core.enums import LeaveCategory, RequestStatus


@dataclass(frozen=True)
class LeaveType:
    leave_type_id: int
    name: str
    requires_evidence: bool = False

    @property
    def category(self) -> LeaveCategory:
        return LeaveCategory.from_label(self.name)


@dataclass(frozen=True)
class LeaveRequest:
    """Đơn xin nghỉ của học sinh cho một khoảng ngày (bao gồm hai đầu)."""

    request_id: int
    student_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str
    status: RequestStatus
    created_at: datetime
    evidence_ref: Optional[str] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    admin_note: Optional[str] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def coverage(self) -> LeaveCoverage:
        return LeaveCoverage(
            category=self.leave_type.category,
            label=self.leave_type.name,
            reason=self.reason,
            request_id=self.request_id,
        )
