from __future__ import annotations

import json
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student
from .repository import StudentRepository

_SELECT = """
    SELECT s.student_id, s.full_name, s.class_id, s.face_template, s.is_active,
           c.name AS class_name
    FROM students s
    JOIN classes c ON c.class_id = s.class_id
"""


def _decode_template(raw) -> Optional[list[float]]:
    if not raw:
        return None
    data = json.loads(raw)
    # Enrollment payloads may be stored as {"descriptor": [...]}.
    if isinstance(data, dict):
        data = data.get("descriptor")
    return [float(v) for v in data] if data else None


def _row_to_student(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        full_name=r["full_name"],
        class_id=int(r["class_id"]),
        face_template=_decode_template(r.get("face_template")),
        is_active=bool(r["is_active"]),
        class_name=r.get("class_name"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE s.student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def list_active(self) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE s.is_active=1 ORDER BY s.class_id, s.student_id")
            return [_row_to_student(r) for r in fetchall(cur)]

    def save_face_template(self, student_id: int, template: Sequence[float]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE students SET face_template=%s WHERE student_id=%s",
                (json.dumps([float(v) for v in template]), int(student_id)),
            )
            return cur.rowcount > 0
