from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in the queue's reference timezone (UTC unless configured)."""

    def __init__(self, tz: str | tzinfo | None = None) -> None:
        if isinstance(tz, str):
            tz = ZoneInfo(tz)
        self._tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self._tz)


def today(clock: Clock) -> date:
    return clock.now().date()


def day_window(clock: Clock) -> tuple[datetime, datetime]:
    """Return ``[start_of_today, start_of_tomorrow)`` in the clock's timezone."""
    now = clock.now()
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    end = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    return start, end
