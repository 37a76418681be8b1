from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import AttendanceStatus, AttendanceType
from ..core.exceptions import DuplicateSubmission
from .model import AttendanceRecord, NewAttendanceRecord
from .repository import AttendanceRepository

Key = tuple[int, date, AttendanceType]


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local ledger storage.

    There is no storage-level unique constraint here, so uniqueness is
    enforced with one lock per (student, date, type) key around the
    check-and-insert. A test and embedding adapter: `build_container` always
    wires the MySQL repository.
    """

    def __init__(self, *, clock: Callable[[], datetime] = now_local):
        self._records: dict[Key, AttendanceRecord] = {}
        self._key_locks: dict[Key, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._next_id = 0
        self._clock = clock

    def _lock_for(self, key: Key) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _allocate_id(self) -> int:
        with self._registry_lock:
            self._next_id += 1
            return self._next_id

    def get(self, student_id: int, attendance_date: date, attendance_type: AttendanceType) -> Optional[AttendanceRecord]:
        return self._records.get((int(student_id), attendance_date, attendance_type))

    def _store(self, record: NewAttendanceRecord) -> AttendanceRecord:
        stored = AttendanceRecord(
            record_id=self._allocate_id(),
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
            updated_at=self._clock(),
        )
        self._records[record.key] = stored
        return stored

    def insert(self, record: NewAttendanceRecord) -> AttendanceRecord:
        with self._lock_for(record.key):
            if record.key in self._records:
                raise DuplicateSubmission(
                    f"{record.attendance_type.value} already recorded for {record.attendance_date.isoformat()}"
                )
            return self._store(record)

    def insert_if_absent(self, record: NewAttendanceRecord) -> Optional[AttendanceRecord]:
        with self._lock_for(record.key):
            if record.key in self._records:
                return None
            return self._store(record)

    def update_status_if(
        self,
        *,
        record_id: int,
        expected: AttendanceStatus,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        current = next((r for r in list(self._records.values()) if r.record_id == int(record_id)), None)
        if current is None:
            return False
        with self._lock_for(current.key):
            latest = self._records.get(current.key)
            if latest is None or latest.status != expected:
                return False
            self._records[current.key] = replace(latest, status=status, note=note, updated_at=self._clock())
            return True

    def _filter(self, predicate) -> Sequence[AttendanceRecord]:
        rows = [r for r in list(self._records.values()) if predicate(r)]
        rows.sort(key=lambda r: (r.attendance_date, r.student_id))
        return rows

    def list_for_student(
        self,
        *,
        student_id: int,
        start_date: date,
        end_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        return self._filter(
            lambda r: r.student_id == int(student_id)
            and start_date <= r.attendance_date <= end_date
            and r.attendance_type is attendance_type
        )

    def list_for_date(
        self,
        attendance_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        return self._filter(lambda r: r.attendance_date == attendance_date and r.attendance_type is attendance_type)

    def list_range(
        self,
        *,
        start_date: date,
        end_date: date,
        attendance_type: AttendanceType = AttendanceType.CHECK_IN,
    ) -> Sequence[AttendanceRecord]:
        return self._filter(lambda r: start_date <= r.attendance_date <= end_date and r.attendance_type is attendance_type)

    def all(self) -> Sequence[AttendanceRecord]:
        return self._filter(lambda r: True)
