from __future__ import annotations

from dataclasses import dataclass
from datetime import time

from ..common.datetime_utils import parse_clock_time
from ..core.constants import (
    DEFAULT_CHECK_IN_OPEN,
    DEFAULT_CHECK_OUT_OPEN,
    DEFAULT_FACE_MATCH_THRESHOLD,
    DEFAULT_FACE_VERIFY_TIMEOUT_S,
    DEFAULT_GEOFENCE_TOLERANCE_M,
    DEFAULT_LATE_CUTOFF,
)


@dataclass(frozen=True)
class Thresholds:
    """Time-window policy used by the status classifier."""

    check_in_open: time
    late_cutoff: time
    check_out_open: time


@dataclass(frozen=True)
class AttendanceSettings:
    """Snapshot of the admin-editable settings table.

    Lưu ý: giá trị bất biến, được truyền tường minh vào từng component
    thay vì đọc từ trạng thái toàn cục.
    """

    thresholds: Thresholds
    geofence_tolerance_m: float
    face_match_threshold: float
    face_verify_timeout_s: float

    @classmethod
    def defaults(cls) -> "AttendanceSettings":
        return cls(
            thresholds=Thresholds(
                check_in_open=parse_clock_time(DEFAULT_CHECK_IN_OPEN),
                late_cutoff=parse_clock_time(DEFAULT_LATE_CUTOFF),
                check_out_open=parse_clock_time(DEFAULT_CHECK_OUT_OPEN),
            ),
            geofence_tolerance_m=float(DEFAULT_GEOFENCE_TOLERANCE_M),
            face_match_threshold=float(DEFAULT_FACE_MATCH_THRESHOLD),
            face_verify_timeout_s=float(DEFAULT_FACE_VERIFY_TIMEOUT_S),
        )


class SettingKey:
    CHECK_IN_OPEN = "check_in_open"
    LATE_CUTOFF = "late_cutoff"
    CHECK_OUT_OPEN = "check_out_open"
    GEOFENCE_TOLERANCE_M = "geofence_tolerance_m"
    FACE_MATCH_THRESHOLD = "face_match_threshold"
    FACE_VERIFY_TIMEOUT_S = "face_verify_timeout_s"

    ALL = (
        CHECK_IN_OPEN,
        LATE_CUTOFF,
        CHECK_OUT_OPEN,
        GEOFENCE_TOLERANCE_M,
        FACE_MATCH_THRESHOLD,
        FACE_VERIFY_TIMEOUT_S,
    )
