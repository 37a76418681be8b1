"""Status classification.

A pure function of submission time, type, thresholds and leave coverage. No
I/O happens here: callers look up the leave coverage and prior check-in and
pass them in, which keeps the whole threshold space deterministic to test.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import Optional, Union

from ..core.enums import AttendanceType
from ..settings.model import Thresholds
from .factory import StatusStrategyFactory
from .model import LeaveCoverage
from .strategies.base import StatusDecision

_FACTORY = StatusStrategyFactory()


def classify_check_in(at: time, thresholds: Thresholds, leave: Optional[LeaveCoverage] = None) -> StatusDecision:
    strategy = _FACTORY.for_check_in(at=at, thresholds=thresholds)
    return strategy.decide(at=at, thresholds=thresholds, leave=leave)


def classify_check_out(at: time, thresholds: Thresholds, *, has_check_in: bool) -> StatusDecision:
    strategy = _FACTORY.for_check_out(at=at, thresholds=thresholds, has_check_in=has_check_in)
    return strategy.decide(at=at, thresholds=thresholds, leave=None)


def classify(
    *,
    attendance_type: AttendanceType,
    at: Union[time, datetime],
    thresholds: Thresholds,
    leave: Optional[LeaveCoverage] = None,
    has_check_in: bool = False,
) -> StatusDecision:
    clock = at.time() if isinstance(at, datetime) else at
    if attendance_type is AttendanceType.CHECK_IN:
        return classify_check_in(clock, thresholds, leave)
    return classify_check_out(clock, thresholds, has_check_in=has_check_in)
