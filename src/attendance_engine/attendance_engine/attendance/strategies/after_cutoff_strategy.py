from __future__ import annotations

from datetime import time
from typing import Optional

from ...core.enums import AttendanceStatus
from ...settings.model import Thresholds
from ..model import LeaveCoverage
from .base import StatusDecision, StatusStrategy


class AfterCutoffStrategy(StatusStrategy):
    """Check-in past the late cutoff: absent, unless an approved leave covers the day."""

    def decide(self, *, at: time, thresholds: Thresholds, leave: Optional[LeaveCoverage]) -> StatusDecision:
        if leave is not None:
            return StatusDecision(status=leave.status, note=leave.note)
        return StatusDecision(status=AttendanceStatus.ABSENT)
