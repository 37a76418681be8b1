from __future__ import annotations

from datetime import time
from typing import Optional

from ...core.constants import LATE_CHECKIN_NOTE
from ...core.enums import AttendanceStatus
from ...settings.model import Thresholds
from ..model import LeaveCoverage
from .base import StatusDecision, StatusStrategy


class LateStrategy(StatusStrategy):
    """Late check-in."""

    def decide(self, *, at: time, thresholds: Thresholds, leave: Optional[LeaveCoverage]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, note=LATE_CHECKIN_NOTE)
