from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..attendance.ledger import AttendanceLedger, LeaveUpgradeResult
from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_date_range, require_non_empty
from ..core.enums import RequestStatus
from ..core.exceptions import (
    EvidenceRequired,
    LeaveAlreadyDecided,
    LeaveOverlap,
    LeaveRequestNotFound,
    StudentNotFound,
    ValidationError,
)
from ..notifications.notifier import Events, Notifier, safe_emit
from ..students.repository import StudentRepository
from .model import LeaveRequest
from .repository import LeaveRequestRepository

logger = logging.getLogger(__name__)


class LeaveService:
    def __init__(
        self,
        leaves: LeaveRequestRepository,
        students: StudentRepository,
        ledger: AttendanceLedger,
        *,
        clock: Optional[Clock] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._leaves = leaves
        self._students = students
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._notifier = notifier

    def create_leave(
        self,
        *,
        student_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        reason: str,
        evidence_ref: Optional[str] = None,
    ) -> int:
        require_date_range(start_date, end_date)
        reason = require_non_empty(reason, "reason")

        if not self._students.get_by_id(int(student_id)):
            raise StudentNotFound(f"Student {student_id} not found")
        leave_type = self._leaves.get_type(int(leave_type_id))
        if not leave_type:
            raise ValidationError(f"Unknown leave type: {leave_type_id}")
        if leave_type.requires_evidence and not (evidence_ref or "").strip():
            raise EvidenceRequired(f"Leave type {leave_type.name} requires supporting evidence")

        overlapping = self._leaves.list_overlapping(student_id=int(student_id), start_date=start_date, end_date=end_date)
        if overlapping:
            clash = overlapping[0]
            raise LeaveOverlap(
                f"Student {student_id} already has leave request {clash.request_id} "
                f"({clash.status.value}, {clash.start_date.isoformat()}..{clash.end_date.isoformat()})"
            )

        request_id = self._leaves.create(
            student_id=int(student_id),
            leave_type_id=leave_type.leave_type_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            evidence_ref=evidence_ref,
        )
        logger.info(
            "Leave request %s created for student %s (%s, %s..%s)",
            request_id, student_id, leave_type.name, start_date.isoformat(), end_date.isoformat(),
        )
        safe_emit(
            self._notifier,
            Events.LEAVE_CREATED,
            {"request_id": request_id, "student_id": int(student_id), "leave_type": leave_type.name},
        )
        return request_id

    def _pending(self, request_id: int) -> LeaveRequest:
        req = self._leaves.get(int(request_id))
        if not req:
            raise LeaveRequestNotFound(f"Leave request {request_id} not found")
        if req.status.is_terminal:
            raise LeaveAlreadyDecided(f"Leave request {request_id} is already {req.status.value}")
        return req

    def _decide(self, req: LeaveRequest, status: RequestStatus, *, admin_id: Optional[int], admin_note: str) -> None:
        ok = self._leaves.decide(
            request_id=req.request_id,
            status=status,
            decided_by=admin_id,
            decided_at=self._clock.now(),
            admin_note=(admin_note or "").strip() or None,
        )
        if not ok:
            # Another admin (or the expiry sweep) decided it first.
            raise LeaveAlreadyDecided(f"Leave request {req.request_id} was decided concurrently")

    def approve_leave(self, *, request_id: int, admin_id: Optional[int] = None, admin_note: str = "") -> LeaveUpgradeResult:
        """Approve, then reconcile the ledger for the elapsed part of the range."""
        req = self._pending(request_id)
        self._decide(req, RequestStatus.APPROVED, admin_id=admin_id, admin_note=admin_note)

        result = self._ledger.upgrade_for_approved_leave(
            req.student_id,
            req.start_date,
            req.end_date,
            req.coverage(),
            now=self._clock.now(),
        )
        logger.info("Leave request %s approved by %s", req.request_id, admin_id)
        safe_emit(
            self._notifier,
            Events.LEAVE_APPROVED,
            {
                "request_id": req.request_id,
                "student_id": req.student_id,
                "created": result.created,
                "upgraded": result.upgraded,
            },
        )
        return result

    def reject_leave(self, *, request_id: int, admin_id: Optional[int] = None, admin_note: str = "") -> None:
        req = self._pending(request_id)
        self._decide(req, RequestStatus.REJECTED, admin_id=admin_id, admin_note=admin_note)
        logger.info("Leave request %s rejected by %s", req.request_id, admin_id)
        safe_emit(
            self._notifier,
            Events.LEAVE_REJECTED,
            {"request_id": req.request_id, "student_id": req.student_id},
        )

    def list_pending(self, *, student_id: Optional[int] = None, limit: int = 500) -> Sequence[LeaveRequest]:
        return self._leaves.list_pending(student_id=student_id, limit=limit)
