from __future__ import annotations

from enum import Enum

from .constants import MEDICAL_LEAVE_LABEL


class AttendanceType(str, Enum):
    """Hai loại điểm danh trong ngày: vào (check-in) và về (check-out)."""

    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class AttendanceStatus(str, Enum):
    """Trạng thái điểm danh chuẩn hoá lưu trong CSDL."""

    PRESENT = "PRESENT"
    LATE = "LATE"
    EXCUSED_LEAVE = "EXCUSED_LEAVE"
    SICK_LEAVE = "SICK_LEAVE"
    ABSENT = "ABSENT"

    @property
    def rank(self) -> int:
        """Precedence: live attendance > leave-derived > absent."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    AttendanceStatus.PRESENT: 2,
    AttendanceStatus.LATE: 2,
    AttendanceStatus.EXCUSED_LEAVE: 1,
    AttendanceStatus.SICK_LEAVE: 1,
    AttendanceStatus.ABSENT: 0,
}


class LeaveCategory(str, Enum):
    """Closed set of leave categories derived from the free-text leave type name."""

    MEDICAL = "MEDICAL"
    GENERAL = "GENERAL"

    @classmethod
    def from_label(cls, label: str | None) -> "LeaveCategory":
        if (label or "").strip().casefold() == MEDICAL_LEAVE_LABEL:
            return cls.MEDICAL
        return cls.GENERAL

    def to_status(self) -> AttendanceStatus:
        if self is LeaveCategory.MEDICAL:
            return AttendanceStatus.SICK_LEAVE
        return AttendanceStatus.EXCUSED_LEAVE


class RequestStatus(str, Enum):
    """Trạng thái luồng duyệt đơn xin nghỉ."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING
