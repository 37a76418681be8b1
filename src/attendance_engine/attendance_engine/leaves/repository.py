from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RequestStatus
from .model import LeaveRequest, LeaveType


class LeaveRequestRepository(Protocol):
    def get_type(self, leave_type_id: int) -> Optional[LeaveType]:
        raise NotImplementedError

    def create(
        self,
        *,
        student_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        reason: str,
        evidence_ref: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: Optional[int],
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        """Transition PENDING -> status. False when the request is no longer PENDING."""

        raise NotImplementedError

    def list_pending(self, *, student_id: Optional[int] = None, limit: int = 500) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_pending_ended_before(self, day: date) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_approved_covering(self, day: date) -> Sequence[LeaveRequest]:
        """APPROVED requests whose [start_date, end_date] contains day."""

        raise NotImplementedError

    def find_approved_covering(self, student_id: int, day: date) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_overlapping(self, *, student_id: int, start_date: date, end_date: date) -> Sequence[LeaveRequest]:
        """Requests of any status whose range intersects [start_date, end_date]."""

        raise NotImplementedError
