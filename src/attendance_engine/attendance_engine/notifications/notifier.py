from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


class Events:
    ATTENDANCE_RECORDED = "attendance.recorded"
    LEAVE_CREATED = "leave.created"
    LEAVE_APPROVED = "leave.approved"
    LEAVE_REJECTED = "leave.rejected"
    LEAVE_EXPIRED = "leave.expired"
    CHECK_IN_REMINDER = "attendance.reminder"
    DAILY_REPORT = "report.daily"
    WEEKLY_SUMMARY = "summary.weekly"
    MONTHLY_SUMMARY = "summary.monthly"


class Notifier(Protocol):
    def emit(self, event: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotifier:
    """Default sink: writes every event to the log. Delivery channels are out of scope."""

    def __init__(self, *, level: int = logging.INFO):
        self._level = level

    def emit(self, event: str, payload: Mapping[str, Any]) -> None:
        logger.log(self._level, "event=%s payload=%s", event, dict(payload))


def safe_emit(notifier: Optional[Notifier], event: str, payload: Mapping[str, Any]) -> bool:
    """Best-effort delivery: a failing notifier never affects the caller's outcome."""
    if notifier is None:
        return False
    try:
        notifier.emit(event, payload)
        return True
    except Exception:
        logger.warning("Notifier failed for event %s", event, exc_info=True)
        return False
