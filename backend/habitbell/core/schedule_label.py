from __future__ import annotations

from typing import Any

from .schedules import DailySchedule, IntervalSchedule, WeeklySchedule

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def weekday_name(weekday: int) -> str:
    if 1 <= weekday <= 7:
        return WEEKDAY_NAMES[weekday - 1]
    return ""


def schedule_label(schedule: Any) -> str:
    """Human readable summary, e.g. "Every 30 min" or "Mon, Wed at 08:00"."""

    if isinstance(schedule, IntervalSchedule):
        if schedule.unit == "hours":
            return f"Every {schedule.value} {'hour' if schedule.value == 1 else 'hours'}"
        return f"Every {schedule.value} {'minute' if schedule.value == 1 else 'min'}"

    if isinstance(schedule, DailySchedule):
        if not schedule.times:
            return "Daily"
        return f"Daily at {', '.join(schedule.times)}"

    if isinstance(schedule, WeeklySchedule):
        if schedule.weekdays:
            days = ", ".join(weekday_name(d) for d in sorted(schedule.weekdays))
        else:
            days = "Weekly"
        times = f" at {', '.join(schedule.times)}" if schedule.times else ""
        return f"{days}{times}"

    return "Scheduled"
