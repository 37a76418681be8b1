from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class Student:
    """Thực thể miền (domain): Học sinh.

    Lưu ý: Đây là đối tượng dữ liệu thuần (không chứa code truy cập DB).
    """

    student_id: int
    full_name: str
    class_id: int
    face_template: Optional[Sequence[float]] = None
    is_active: bool = True
    class_name: Optional[str] = None

    @property
    def has_template(self) -> bool:
        return bool(self.face_template)
