from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LeaveRequest, LeaveType
from .repository import LeaveRequestRepository

_SELECT = """
    SELECT lr.request_id, lr.student_id, lr.start_date, lr.end_date, lr.reason,
           lr.evidence_ref, lr.status, lr.created_at, lr.decided_by, lr.decided_at,
           lr.admin_note, lt.leave_type_id, lt.name AS leave_type_name,
           lt.requires_evidence
    FROM leave_requests lr
    JOIN leave_types lt ON lt.leave_type_id = lr.leave_type_id
"""


def _row_to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        student_id=int(r["student_id"]),
        leave_type=LeaveType(
            leave_type_id=int(r["leave_type_id"]),
            name=r["leave_type_name"],
            requires_evidence=bool(r["requires_evidence"]),
        ),
        start_date=r["start_date"],
        end_date=r["end_date"],
        reason=r.get("reason") or "",
        status=RequestStatus(r["status"]),
        created_at=r["created_at"],
        evidence_ref=r.get("evidence_ref"),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        admin_note=r.get("admin_note"),
    )


class MySQLLeaveRequestRepository(LeaveRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Leave types --------
    def get_type(self, leave_type_id: int) -> Optional[LeaveType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT leave_type_id, name, requires_evidence FROM leave_types WHERE leave_type_id=%s",
                (int(leave_type_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return LeaveType(
                leave_type_id=int(r["leave_type_id"]),
                name=r["name"],
                requires_evidence=bool(r["requires_evidence"]),
            )

    # -------- Requests --------
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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(
                    student_id, leave_type_id, start_date, end_date, reason, evidence_ref, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(student_id),
                    int(leave_type_id),
                    start_date,
                    end_date,
                    reason,
                    evidence_ref,
                    RequestStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def get(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE lr.request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: Optional[int],
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=%s, decided_at=%s, admin_note=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    decided_by,
                    decided_at,
                    admin_note,
                    int(request_id),
                    RequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def _select_where(self, where: str, params: tuple, *, limit: Optional[int] = None) -> Sequence[LeaveRequest]:
        sql = _SELECT + f" WHERE {where} ORDER BY lr.start_date, lr.request_id"
        if limit is not None:
            sql += " LIMIT %s"
            params = params + (int(limit),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_row_to_request(r) for r in fetchall(cur)]

    def list_pending(self, *, student_id: Optional[int] = None, limit: int = 500) -> Sequence[LeaveRequest]:
        if student_id is None:
            return self._select_where("lr.status=%s", (RequestStatus.PENDING.value,), limit=limit)
        return self._select_where(
            "lr.status=%s AND lr.student_id=%s",
            (RequestStatus.PENDING.value, int(student_id)),
            limit=limit,
        )

    def list_pending_ended_before(self, day: date) -> Sequence[LeaveRequest]:
        return self._select_where("lr.status=%s AND lr.end_date < %s", (RequestStatus.PENDING.value, day))

    def list_approved_covering(self, day: date) -> Sequence[LeaveRequest]:
        return self._select_where(
            "lr.status=%s AND lr.start_date <= %s AND lr.end_date >= %s",
            (RequestStatus.APPROVED.value, day, day),
        )

    def find_approved_covering(self, student_id: int, day: date) -> Optional[LeaveRequest]:
        rows = self._select_where(
            "lr.status=%s AND lr.student_id=%s AND lr.start_date <= %s AND lr.end_date >= %s",
            (RequestStatus.APPROVED.value, int(student_id), day, day),
            limit=1,
        )
        return rows[0] if rows else None

    def list_overlapping(self, *, student_id: int, start_date: date, end_date: date) -> Sequence[LeaveRequest]:
        return self._select_where(
            "lr.student_id=%s AND lr.start_date <= %s AND lr.end_date >= %s",
            (int(student_id), end_date, start_date),
        )
