from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    reason = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    reason = "validation_failed"


class DomainRejection(DomainError):
    """A well-formed request that the rules refuse; never retried."""

    reason = "rejected"


class InfrastructureError(DomainError):
    """Storage or verifier failure; the caller may retry."""

    reason = "infrastructure"
    retryable = True


# -------- Submission rejections --------
class StudentNotFound(DomainRejection):
    reason = "student_not_found"


class FaceNotEnrolled(DomainRejection):
    reason = "face_not_enrolled"


class DuplicateSubmission(DomainRejection):
    reason = "duplicate_submission"


class NoLocationConfigured(DomainRejection):
    reason = "no_location_configured"


class OutOfRange(DomainRejection):
    reason = "out_of_range"

    def __init__(self, message: str, *, distance_m: float, radius_m: float, tolerance_m: float, location_id: Optional[int] = None):
        super().__init__(message)
        self.distance_m = distance_m
        self.radius_m = radius_m
        self.tolerance_m = tolerance_m
        self.location_id = location_id


class MissingCheckIn(DomainRejection):
    reason = "missing_check_in"


class TooEarly(DomainRejection):
    reason = "too_early"


class FaceMismatch(DomainRejection):
    reason = "face_mismatch"

    def __init__(self, message: str, *, score: float):
        super().__init__(message)
        self.score = score


class NoFaceDetected(DomainRejection):
    reason = "no_face_detected"


# -------- Leave requests --------
class LeaveRequestNotFound(DomainRejection):
    reason = "leave_request_not_found"


class LeaveAlreadyDecided(DomainRejection):
    reason = "leave_already_decided"


class LeaveOverlap(DomainRejection):
    """The student already has a request (any status) touching these dates."""

    reason = "leave_overlap"


class EvidenceRequired(DomainRejection):
    reason = "evidence_required"


# -------- Infrastructure --------
class StorageUnavailable(InfrastructureError):
    reason = "storage_unavailable"


class VerifierTimeout(InfrastructureError):
    reason = "verifier_timeout"


class VerificationError(InfrastructureError):
    reason = "verification_error"
