"""
Turns a reminder schedule into the concrete triggers handed to the
notification scheduler.

One reminder may expand into several triggers (several daily times, or
weekdays x times). Each gets an identifier suffix ("0", "1", ...) in
expansion order so the same schedule always maps to the same identifiers.
Malformed input never raises: bad times are clamped, empty lists fall back
to defaults and unknown kinds become an hourly interval.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

from .schedules import (
    DEFAULT_TIME,
    DEFAULT_WEEKDAY,
    DailySchedule,
    IntervalSchedule,
    WeeklySchedule,
)
from .triggers import DailyTrigger, IntervalTrigger, TriggerSpec, WeeklyTrigger

MIN_INTERVAL_SECONDS = 60
FALLBACK_INTERVAL_SECONDS = 3600

DEFAULT_HOUR = 9
DEFAULT_MINUTE = 0

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def _parse_int_prefix(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    m = _INT_PREFIX.match(value)
    if not m:
        return None
    return int(m.group(1))


def parse_time(value: Optional[str]) -> Tuple[int, int]:
    """
    Parse "HH:mm" into (hour, minute).

    Each component falls back to its own default (9 / 0) when missing or
    non-numeric, then is clamped independently: "25:99" -> (23, 59).
    """
    parts = (value if value is not None else DEFAULT_TIME).strip().split(":")
    hour = _parse_int_prefix(parts[0])
    minute = _parse_int_prefix(parts[1]) if len(parts) > 1 else None

    if hour is None:
        hour = DEFAULT_HOUR
    if minute is None:
        minute = DEFAULT_MINUTE

    return min(23, max(0, hour)), min(59, max(0, minute))


def interval_seconds(value: Any, unit: str) -> int:
    try:
        amount = int(value)
    except (TypeError, ValueError):
        return MIN_INTERVAL_SECONDS
    factor = 3600 if unit == "hours" else 60
    return max(MIN_INTERVAL_SECONDS, amount * factor)


def compile_schedule(schedule: Any) -> List[TriggerSpec]:
    """Expand a schedule config into ordered trigger specs."""

    if isinstance(schedule, IntervalSchedule):
        seconds = interval_seconds(schedule.value, schedule.unit)
        return [TriggerSpec("0", IntervalTrigger(seconds=seconds, repeats=True))]

    if isinstance(schedule, DailySchedule):
        times = list(schedule.times) or [DEFAULT_TIME]
        specs: List[TriggerSpec] = []
        for i, t in enumerate(times):
            hour, minute = parse_time(t)
            specs.append(TriggerSpec(str(i), DailyTrigger(hour=hour, minute=minute)))
        return specs

    if isinstance(schedule, WeeklySchedule):
        # weekday order is kept as given; suffixes depend on it
        weekdays = list(schedule.weekdays) or [DEFAULT_WEEKDAY]
        times = list(schedule.times) or [DEFAULT_TIME]
        specs = []
        idx = 0
        for weekday in weekdays:
            for t in times:
                hour, minute = parse_time(t)
                specs.append(
                    TriggerSpec(str(idx), WeeklyTrigger(weekday=weekday, hour=hour, minute=minute))
                )
                idx += 1
        return specs

    return [TriggerSpec("0", IntervalTrigger(seconds=FALLBACK_INTERVAL_SECONDS, repeats=True))]
