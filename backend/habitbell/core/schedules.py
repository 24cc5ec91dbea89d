"""Reminder schedule configs (interval / daily / weekly) and their JSON shape."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

DEFAULT_TIME = "09:00"
DEFAULT_WEEKDAY = 1  # Sunday

INTERVAL_UNITS = ("minutes", "hours")


@dataclass(frozen=True)
class IntervalSchedule:
    value: int
    unit: str = "minutes"
    kind: str = field(default="interval", init=False)


@dataclass(frozen=True)
class DailySchedule:
    times: List[str]
    kind: str = field(default="daily", init=False)


@dataclass(frozen=True)
class WeeklySchedule:
    # 1 = Sunday .. 7 = Saturday
    weekdays: List[int]
    times: List[str]
    kind: str = field(default="weekly", init=False)


ScheduleConfig = Union[IntervalSchedule, DailySchedule, WeeklySchedule]


def schedule_to_dict(schedule: ScheduleConfig) -> Dict[str, Any]:
    if isinstance(schedule, IntervalSchedule):
        return {"kind": "interval", "value": schedule.value, "unit": schedule.unit}
    if isinstance(schedule, DailySchedule):
        return {"kind": "daily", "times": list(schedule.times)}
    return {
        "kind": "weekly",
        "weekdays": list(schedule.weekdays),
        "times": list(schedule.times),
    }


def schedule_from_dict(data: Any) -> Optional[ScheduleConfig]:
    """
    Strictly parse the stored schedule shape.
    Returns None when the shape is not one of the known kinds or a field has
    the wrong type; callers decide what that means.
    """
    if not isinstance(data, dict):
        return None

    kind = data.get("kind")

    if kind == "interval":
        value = data.get("value")
        unit = data.get("unit")
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        if unit not in INTERVAL_UNITS:
            return None
        return IntervalSchedule(value=value, unit=unit)

    if kind == "daily":
        times = data.get("times")
        if not _is_str_list(times):
            return None
        return DailySchedule(times=list(times))

    if kind == "weekly":
        weekdays = data.get("weekdays")
        times = data.get("times")
        if not _is_str_list(times):
            return None
        if not isinstance(weekdays, list) or not all(
            isinstance(d, int) and not isinstance(d, bool) and 1 <= d <= 7
            for d in weekdays
        ):
            return None
        return WeeklySchedule(weekdays=list(weekdays), times=list(times))

    return None


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)
