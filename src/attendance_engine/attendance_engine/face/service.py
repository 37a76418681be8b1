from __future__ import annotations

import logging

from ..core.exceptions import StudentNotFound, ValidationError
from ..students.repository import StudentRepository
from .artifacts import probe_artifact
from .verifier import TemplateExtractor

logger = logging.getLogger(__name__)


class FaceEnrollmentService:
    """Capture a student's reference template from an enrollment photo."""

    def __init__(self, students: StudentRepository, extractor: TemplateExtractor, *, upload_root: str | None = None):
        self._students = students
        self._extractor = extractor
        self._upload_root = upload_root

    def enroll(self, student_id: int, image_path: str) -> int:
        """Returns the template length. The enrollment photo is never kept."""
        if not image_path:
            raise ValidationError("Enrollment photo is required")

        with probe_artifact(image_path, upload_root=self._upload_root):
            student = self._students.get_by_id(int(student_id))
            if not student:
                raise StudentNotFound(f"Student {student_id} not found")

            template = self._extractor.extract(image_path)
            if not self._students.save_face_template(student.student_id, template):
                raise StudentNotFound(f"Student {student_id} not found")

        logger.info("Enrolled face template for student %s (%d values)", student_id, len(template))
        return len(template)
