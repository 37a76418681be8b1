from __future__ import annotations

from abc import ABC, abstractmethod

from ..model import StatusCounts


class SummaryCalculator(ABC):
    """Calculator interface (Strategy Pattern for attendance summaries)."""

    @abstractmethod
    def attendance_rate(self, counts: StatusCounts, expected_days: int) -> float:
        raise NotImplementedError

    @abstractmethod
    def is_perfect(self, counts: StatusCounts, expected_days: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def is_high_absence(self, counts: StatusCounts, threshold: int) -> bool:
        raise NotImplementedError
