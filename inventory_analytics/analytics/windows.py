"""
Date Windows

Half-open `[start, end)` analysis windows over order creation time, with
normalization of caller-supplied ranges and previous-period derivation.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how timestamps are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class DateWindow:
    """Half-open time window `[start, end)`"""
    start: datetime
    end: datetime

    @classmethod
    def trailing(cls, end: datetime, days: int) -> "DateWindow":
        """Window of `days` days ending at `end`"""
        return cls(start=end - timedelta(days=days), end=end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def analysis_days(self) -> int:
        """Whole days covered, at least 1"""
        return max(1, math.ceil(self.duration / ONE_DAY))

    def previous(self) -> "DateWindow":
        """The immediately preceding window of identical duration"""
        return DateWindow(start=self.start - self.duration, end=self.start)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def normalize_date_range(
    start: Optional[datetime],
    end: Optional[datetime],
    fallback_days: int,
    now: Optional[datetime] = None,
) -> DateWindow:
    """
    Build a window from optional bounds.

    A missing end defaults to now, a missing start to `fallback_days` before
    the end. Reversed bounds are swapped rather than rejected.
    """
    now = now or utcnow()
    end = end or now
    start = start or end - timedelta(days=fallback_days)
    if start > end:
        start, end = end, start
    return DateWindow(start=start, end=end)


def window_from_dates(
    start_date: Optional[date],
    end_date: Optional[date],
    fallback_days: int,
    now: Optional[datetime] = None,
) -> DateWindow:
    """
    Build a window from calendar dates.

    Both dates are inclusive: the window ends at midnight after `end_date`.
    """
    if start_date and end_date and start_date > end_date:
        start_date, end_date = end_date, start_date

    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date, time.min) + ONE_DAY if end_date else None
    return normalize_date_range(start, end, fallback_days, now=now)
