from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class IntervalTrigger:
    """Fires every `seconds`, repeating until cancelled."""

    seconds: int
    repeats: bool = True


@dataclass(frozen=True)
class DailyTrigger:
    hour: int
    minute: int


@dataclass(frozen=True)
class WeeklyTrigger:
    # 1 = Sunday .. 7 = Saturday
    weekday: int
    hour: int
    minute: int


@dataclass(frozen=True)
class OneShotTrigger:
    """Fires once, `seconds` after it was scheduled."""

    seconds: int


Trigger = Union[IntervalTrigger, DailyTrigger, WeeklyTrigger, OneShotTrigger]


@dataclass(frozen=True)
class TriggerSpec:
    identifier_suffix: str
    trigger: Trigger


def trigger_to_dict(trigger: Trigger) -> Dict[str, Any]:
    if isinstance(trigger, IntervalTrigger):
        return {"type": "interval", "seconds": trigger.seconds, "repeats": trigger.repeats}
    if isinstance(trigger, DailyTrigger):
        return {"type": "daily", "hour": trigger.hour, "minute": trigger.minute}
    if isinstance(trigger, WeeklyTrigger):
        return {
            "type": "weekly",
            "weekday": trigger.weekday,
            "hour": trigger.hour,
            "minute": trigger.minute,
        }
    return {"type": "one_shot", "seconds": trigger.seconds}


def trigger_from_dict(data: Dict[str, Any]) -> Optional[Trigger]:
    kind = data.get("type")
    try:
        if kind == "interval":
            return IntervalTrigger(seconds=int(data["seconds"]), repeats=bool(data.get("repeats", True)))
        if kind == "daily":
            return DailyTrigger(hour=int(data["hour"]), minute=int(data["minute"]))
        if kind == "weekly":
            return WeeklyTrigger(
                weekday=int(data["weekday"]),
                hour=int(data["hour"]),
                minute=int(data["minute"]),
            )
        if kind == "one_shot":
            return OneShotTrigger(seconds=int(data["seconds"]))
    except (KeyError, TypeError, ValueError):
        return None
    return None


def _combine_local(day: date, hour: int, minute: int, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(hour=hour, minute=minute), tzinfo=tz)


def next_fire_after(trigger: Trigger, after: datetime, tz: tzinfo) -> datetime:
    """
    Next instant (aware) at which `trigger` fires, strictly after `after`.
    Daily and weekly triggers follow local wall-clock time in `tz`.
    """
    if isinstance(trigger, (IntervalTrigger, OneShotTrigger)):
        return after + timedelta(seconds=trigger.seconds)

    local = after.astimezone(tz)

    if isinstance(trigger, DailyTrigger):
        candidate = _combine_local(local.date(), trigger.hour, trigger.minute, tz)
        if candidate <= local:
            candidate = _combine_local(local.date() + timedelta(days=1), trigger.hour, trigger.minute, tz)
        return candidate

    # weekday 1 = Sunday; date.weekday() 0 = Monday
    target = (trigger.weekday + 5) % 7
    day = local.date() + timedelta(days=(target - local.weekday()) % 7)
    candidate = _combine_local(day, trigger.hour, trigger.minute, tz)
    if candidate <= local:
        candidate = _combine_local(day + timedelta(days=7), trigger.hour, trigger.minute, tz)
    return candidate
