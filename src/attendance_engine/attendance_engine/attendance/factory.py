from __future__ import annotations

from dataclasses import dataclass
from datetime import time

from ..common.datetime_utils import minute_of_day
from ..core.exceptions import MissingCheckIn, TooEarly
from ..settings.model import Thresholds
from .strategies.after_cutoff_strategy import AfterCutoffStrategy
from .strategies.base import StatusStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class StatusStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on the time window.

    Times are compared at minute resolution.
    """

    def for_check_in(self, *, at: time, thresholds: Thresholds) -> StatusStrategy:
        minute = minute_of_day(at)
        if minute <= minute_of_day(thresholds.check_in_open):
            return PresentStrategy()
        if minute <= minute_of_day(thresholds.late_cutoff):
            return LateStrategy()
        return AfterCutoffStrategy()

    def for_check_out(self, *, at: time, thresholds: Thresholds, has_check_in: bool) -> StatusStrategy:
        if not has_check_in:
            raise MissingCheckIn("No check-in recorded for today")
        if minute_of_day(at) < minute_of_day(thresholds.check_out_open):
            raise TooEarly(f"Check-out opens at {thresholds.check_out_open.strftime('%H:%M')}")
        # Departure time carries no lateness concept; a valid check-out is always present.
        return PresentStrategy()
