from __future__ import annotations

from datetime import time
from typing import Optional

from ...core.enums import AttendanceStatus
from ...settings.model import Thresholds
from ..model import LeaveCoverage
from .base import StatusDecision, StatusStrategy


class PresentStrategy(StatusStrategy):
    """Check-in at or before the opening threshold, and every valid check-out."""

    def decide(self, *, at: time, thresholds: Thresholds, leave: Optional[LeaveCoverage]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
