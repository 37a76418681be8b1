from __future__ import annotations

import math

from .base import SummaryCalculator
from ..model import StatusCounts


class StandardSummaryCalculator(SummaryCalculator):
    """Standard rule: (present + late) / expected business days, as a whole percent."""

    def attendance_rate(self, counts: StatusCounts, expected_days: int) -> float:
        if expected_days <= 0:
            return 0.0
        return float(math.floor(counts.attended * 100 / expected_days + 0.5))

    def is_perfect(self, counts: StatusCounts, expected_days: int) -> bool:
        return expected_days > 0 and counts.present >= expected_days

    def is_high_absence(self, counts: StatusCounts, threshold: int) -> bool:
        return counts.absent >= threshold
