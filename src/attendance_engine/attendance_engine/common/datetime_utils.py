from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterator, Protocol


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_clock_time(value: str) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS' into a time (seconds dropped)."""
    v = (value or "").strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            t = datetime.strptime(v, fmt).time()
        except ValueError:
            continue
        return t.replace(second=0)
    raise ValueError(f"Invalid clock time: {value!r}")


def minute_of_day(value: time | datetime) -> int:
    return value.hour * 60 + value.minute


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def iter_dates(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def business_days(start: date, end: date) -> list[date]:
    return [d for d in iter_dates(start, end) if not is_weekend(d)]


def week_range(any_day: date) -> tuple[date, date]:
    """Monday..Sunday week containing any_day."""
    start = any_day - timedelta(days=any_day.weekday())
    return start, start + timedelta(days=6)


def month_range(month: int, year: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def previous_month(today: date) -> tuple[int, int]:
    first = today.replace(day=1) - timedelta(days=1)
    return first.month, first.year


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Local wall clock; injected so tests can use a fixed one."""

    def now(self) -> datetime:
        return now_local()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
