"""
Streaks from completion timestamps.

A day is the observer's local calendar day at call time; any number of
completions on one day count once. Historical timestamps are not
reinterpreted in whatever zone was active when they were recorded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional

from .clock import local_tz, ms_to_local_date, to_local


@dataclass(frozen=True)
class StreakResult:
    current_streak: int
    longest_streak: int


def compute_streak(
    completed_at_ms: Iterable[int],
    *,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> StreakResult:
    """
    Return current and longest streak.

    The current streak is the last run of consecutive days, but only while
    that run ends today or yesterday; otherwise it is broken and reads 0.
    """
    tz = tz or local_tz()
    days = sorted({ms_to_local_date(ms, tz) for ms in completed_at_ms})
    if not days:
        return StreakResult(current_streak=0, longest_streak=0)

    longest = 1
    run = 1
    prev: date = days[0]
    for day in days[1:]:
        # calendar-date difference, immune to DST offset changes
        if (day - prev).days == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
        prev = day
    longest = max(longest, run)

    today = to_local(now, tz).date()
    yesterday = today - timedelta(days=1)
    current = run if days[-1] in (today, yesterday) else 0

    return StreakResult(current_streak=current, longest_streak=longest)
