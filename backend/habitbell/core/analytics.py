"""
Completion analytics. Pure functions over a completion log plus optional
lookup maps; nothing here touches the database. Every window is anchored
to the `now` passed in.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .clock import local_date_key, local_tz, to_local
from .records import CompletionRecord
from .schedule_label import WEEKDAY_NAMES


@dataclass(frozen=True)
class DayCount:
    date: str
    label: str  # e.g. "Mon 12"
    count: int


@dataclass(frozen=True)
class CategorySegment:
    category_id: Optional[str]
    category_name: str
    count: int


@dataclass(frozen=True)
class StatsSnapshot:
    total_completions: int
    total_completions_this_week: int
    completion_percentage: int
    weekly_trend: List[DayCount] = field(default_factory=list)


def occurrence_key(completion: CompletionRecord, tz: Optional[tzinfo] = None) -> str:
    """Cached occurrence date when present, otherwise derived from completed_at."""

    if completion.occurrence_date:
        return completion.occurrence_date
    return local_date_key(completion.completed_at, tz)


def last_n_days(days: int, *, now: datetime, tz: Optional[tzinfo] = None) -> List[date]:
    """The trailing `days` local calendar days ending today, oldest first."""

    today = to_local(now, tz or local_tz()).date()
    return [today - timedelta(days=i) for i in range(days - 1, -1, -1)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def total_completions(
    completions: Sequence[CompletionRecord],
    *,
    since_ms: Optional[int] = None,
) -> int:
    if since_ms is None:
        return len(completions)
    return sum(1 for c in completions if c.completed_at >= since_ms)


def weekly_trend(
    completions: Iterable[CompletionRecord],
    days: int = 7,
    *,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> List[DayCount]:
    tz = tz or local_tz()
    window = last_n_days(days, now=now, tz=tz)
    counts: Dict[str, int] = {d.isoformat(): 0 for d in window}

    for c in completions:
        key = occurrence_key(c, tz)
        if key in counts:
            counts[key] += 1

    # date.weekday() is Monday=0; WEEKDAY_NAMES starts on Sunday
    return [
        DayCount(
            date=d.isoformat(),
            label=f"{WEEKDAY_NAMES[(d.weekday() + 1) % 7]} {d.day}",
            count=counts[d.isoformat()],
        )
        for d in window
    ]


def completion_percentage(
    completions: Iterable[CompletionRecord],
    days: int = 7,
    *,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> int:
    """Share (0-100) of the trailing `days` that had at least one completion."""

    if days <= 0:
        return 0
    tz = tz or local_tz()
    window = {d.isoformat() for d in last_n_days(days, now=now, tz=tz)}
    active = {key for key in (occurrence_key(c, tz) for c in completions) if key in window}
    return _round_half_up(100 * len(active) / days)


def distribution_by_category(
    completions: Iterable[CompletionRecord],
    reminder_to_category: Mapping[str, Optional[str]],
    category_to_name: Mapping[str, str],
    uncategorized_label: str = "Uncategorized",
) -> List[CategorySegment]:
    """
    Completion counts per category, largest first.

    Reminders without a category, and categories that no longer exist,
    share one uncategorized bucket keyed by None.
    """
    counts: Dict[Optional[str], int] = {}
    for c in completions:
        category_id = reminder_to_category.get(c.reminder_id)
        if category_id is not None and category_id not in category_to_name:
            category_id = None
        counts[category_id] = counts.get(category_id, 0) + 1

    segments = [
        CategorySegment(
            category_id=category_id,
            category_name=uncategorized_label if category_id is None else category_to_name[category_id],
            count=count,
        )
        for category_id, count in counts.items()
    ]
    segments.sort(key=lambda s: s.count, reverse=True)
    return segments


def stats_snapshot(
    completions: Sequence[CompletionRecord],
    *,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> StatsSnapshot:
    week_ago_ms = int((now - timedelta(days=7)).timestamp() * 1000)
    return StatsSnapshot(
        total_completions=total_completions(completions),
        total_completions_this_week=total_completions(completions, since_ms=week_ago_ms),
        completion_percentage=completion_percentage(completions, 7, now=now, tz=tz),
        weekly_trend=weekly_trend(completions, 7, now=now, tz=tz),
    )
