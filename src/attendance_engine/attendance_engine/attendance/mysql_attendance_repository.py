from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, AttendanceType
from ..core.exceptions import DuplicateSubmission
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord, NewAttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, student_id, attendance_date, attendance_type, status, submitted_at,
    location_id, latitude, longitude, photo_ref, note, updated_at
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        student_id=int(r["student_id"]),
        attendance_date=r["attendance_date"],
        attendance_type=AttendanceType(r["attendance_type"]),
        status=AttendanceStatus(r["status"]),
        submitted_at=r["submitted_at"],
        location_id=r.get("location_id"),
        latitude=float(r["latitude"]) if r.get("latitude") is not None else None,
        longitude=float(r["longitude"]) if r.get("longitude") is not None else None,
        photo_ref=r.get("photo_ref"),
        note=r.get("note"),
        updated_at=r.get("updated_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    """Relies on UNIQUE(student_id, attendance_date, attendance_type) for atomicity."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, student_id: int, attendance_date: date, attendance_type: AttendanceType) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND attendance_date=%s AND attendance_type=%s
                """,
                (int(student_id), attendance_date, attendance_type.value),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def _insert(self, record: NewAttendanceRecord) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    student_id, attendance_date, attendance_type, status, submitted_at,
                    location_id, latitude, longitude, photo_ref, note
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(record.student_id),
                    record.attendance_date,
                    record.attendance_type.value,
                    record.status.value,
                    record.submitted_at,
                    record.location_id,
                    record.latitude,
                    record.longitude,
                    record.photo_ref,
                    record.note,
                ),
            )
            return int(cur.lastrowid)

    @staticmethod
    def _materialize(record_id: int, record: NewAttendanceRecord) -> AttendanceRecord:
        return AttendanceRecord(
            record_id=record_id,
            student_id=record.student_id,
            attendance_date=record.attendance_date,
            attendance_type=record.attendance_type,
            status=record.status,
            submitted_at=record.submitted_at,
            location_id=record.location_id,
            latitude=record.latitude,
            longitude=record.longitude,
            photo_ref=record.photo_ref,
            note=record.note,
        )

    def insert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        try:
            record_id = self._insert(record)
        except mysql.connector.errors.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise DuplicateSubmission(
                    f"{record.attendance_type.value} already recorded for {record.attendance_date.isoformat()}"
                ) from exc
            raise
        return self._materialize(record_id, record)

    def insert_if_absent(self, record: NewAttendanceRecord) -> Optional[AttendanceRecord]:
        """None when the key already exists; any other integrity error propagates."""
        try:
            record_id = self._insert(record)
        except mysql.connector.errors.IntegrityError as exc:
            if is_duplicate_key(exc):
                return None
            raise
        return self._materialize(record_id, record)

    def update_status_if(
        self,
        *,
        record_id: int,
        expected: AttendanceStatus,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, note=%s
                WHERE record_id=%s AND status=%s
                """,
                (status.value, note, int(record_id), expected.value),
            )
            return cur.rowcount > 0

    def _select_where(self, where: str, params: tuple) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY attendance_date, student_id
                """,
                params,
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_student(
        self,
        *,
        student_id: int,
        start_date: date,
        end_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        return self._select_where(
            "student_id=%s AND attendance_date BETWEEN %s AND %s AND attendance_type=%s",
            (int(student_id), start_date, end_date, attendance_type.value),
        )

    def list_for_date(
        self,
        attendance_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        return self._select_where(
            "attendance_date=%s AND attendance_type=%s",
            (attendance_date, attendance_type.value),
        )

    def list_range(
        self,
        *,
        start_date: date,
        end_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        return self._select_where(
            "attendance_date BETWEEN %s AND %s AND attendance_type=%s",
            (start_date, end_date, attendance_type.value),
        )
