"""
Decoders for stored reminder and completion records.

Each decoder tries the current schema first, then every known legacy schema
in order. A record that matches none of them comes back as
`UnrecognizedRecord` with a reason instead of being coerced into shape.

Legacy reminders (before schedules existed) carried `intervalType`
("hourly" / "daily" / "custom") with `dailyTime` or `customIntervalMinutes`,
and `soundEnabled` instead of `ringtone`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .records import (
    COMPLETION_SOURCES,
    DEFAULT_RINGTONE,
    DEFAULT_VIBRATION,
    CompletionRecord,
    ReminderRecord,
)
from .schedules import (
    DEFAULT_TIME,
    DailySchedule,
    IntervalSchedule,
    ScheduleConfig,
    schedule_from_dict,
)

SCHEMA_CURRENT = "current"
SCHEMA_LEGACY_INTERVAL_TYPE = "legacy_interval_type"
SCHEMA_LEGACY_NO_SOURCE = "legacy_no_source"


@dataclass(frozen=True)
class DecodedReminder:
    reminder: ReminderRecord
    schema: str


@dataclass(frozen=True)
class DecodedCompletion:
    completion: CompletionRecord
    schema: str


@dataclass(frozen=True)
class UnrecognizedRecord:
    raw: Any
    reason: str


ReminderDecodeResult = Union[DecodedReminder, UnrecognizedRecord]
CompletionDecodeResult = Union[DecodedCompletion, UnrecognizedRecord]


class _SchemaMismatch(Exception):
    pass


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_str(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise _SchemaMismatch(f"{key} must be a non-empty string")
    return value


def _optional_str(raw: Dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _SchemaMismatch(f"{key} must be a string")
    return value


def _common_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    enabled = raw.get("enabled")
    if not isinstance(enabled, bool):
        raise _SchemaMismatch("enabled must be a boolean")
    created_at = raw.get("createdAt")
    if not _is_int(created_at):
        raise _SchemaMismatch("createdAt must be an integer (unix ms)")
    return {
        "id": _require_str(raw, "id"),
        "title": _require_str(raw, "title"),
        "enabled": enabled,
        "created_at": created_at,
        "category_id": _optional_str(raw, "categoryId"),
        "vibration": _optional_str(raw, "vibration") or DEFAULT_VIBRATION,
    }


def _decode_current(raw: Dict[str, Any]) -> ReminderRecord:
    if "schedule" not in raw:
        raise _SchemaMismatch("missing schedule")
    schedule = schedule_from_dict(raw["schedule"])
    if schedule is None:
        raise _SchemaMismatch("schedule is not a recognised interval/daily/weekly config")
    ringtone = raw.get("ringtone", DEFAULT_RINGTONE)
    if not isinstance(ringtone, str):
        raise _SchemaMismatch("ringtone must be a string")
    return ReminderRecord(schedule=schedule, ringtone=ringtone, **_common_fields(raw))


def _legacy_schedule(raw: Dict[str, Any]) -> ScheduleConfig:
    interval_type = raw.get("intervalType")
    if interval_type == "hourly":
        return IntervalSchedule(value=60, unit="minutes")
    if interval_type == "daily":
        daily_time = raw.get("dailyTime")
        if daily_time is not None and not isinstance(daily_time, str):
            raise _SchemaMismatch("dailyTime must be a string")
        return DailySchedule(times=[daily_time or DEFAULT_TIME])
    if interval_type == "custom":
        minutes = raw.get("customIntervalMinutes")
        if minutes is None:
            minutes = 60
        if not _is_int(minutes):
            raise _SchemaMismatch("customIntervalMinutes must be an integer")
        return IntervalSchedule(value=max(1, minutes), unit="minutes")
    raise _SchemaMismatch(f"unknown intervalType {interval_type!r}")


def _decode_legacy_interval_type(raw: Dict[str, Any]) -> ReminderRecord:
    if "intervalType" not in raw:
        raise _SchemaMismatch("missing intervalType")
    schedule = _legacy_schedule(raw)

    ringtone = raw.get("ringtone")
    if ringtone is None:
        sound_enabled = raw.get("soundEnabled")
        if sound_enabled is not None and not isinstance(sound_enabled, bool):
            raise _SchemaMismatch("soundEnabled must be a boolean")
        ringtone = "none" if sound_enabled is False else DEFAULT_RINGTONE
    elif not isinstance(ringtone, str):
        raise _SchemaMismatch("ringtone must be a string")

    return ReminderRecord(schedule=schedule, ringtone=ringtone, **_common_fields(raw))


_REMINDER_SCHEMAS = (
    (SCHEMA_CURRENT, _decode_current),
    (SCHEMA_LEGACY_INTERVAL_TYPE, _decode_legacy_interval_type),
)


def decode_reminder_record(raw: Any) -> ReminderDecodeResult:
    if not isinstance(raw, dict):
        return UnrecognizedRecord(raw=raw, reason="record is not an object")

    reasons = []
    for schema, decoder in _REMINDER_SCHEMAS:
        try:
            return DecodedReminder(reminder=decoder(raw), schema=schema)
        except _SchemaMismatch as exc:
            reasons.append(f"{schema}: {exc}")
    return UnrecognizedRecord(raw=raw, reason="; ".join(reasons))


def decode_completion_record(raw: Any) -> CompletionDecodeResult:
    """
    Current completions carry `source`; older ones predate it and were
    always marked in the app.
    """
    if not isinstance(raw, dict):
        return UnrecognizedRecord(raw=raw, reason="record is not an object")
    try:
        completed_at = raw.get("completedAt")
        if not _is_int(completed_at):
            raise _SchemaMismatch("completedAt must be an integer (unix ms)")
        base = {
            "id": _require_str(raw, "id"),
            "reminder_id": _require_str(raw, "reminderId"),
            "completed_at": completed_at,
        }
        occurrence_date = _optional_str(raw, "occurrenceDate")
    except _SchemaMismatch as exc:
        return UnrecognizedRecord(raw=raw, reason=str(exc))

    if "source" not in raw:
        return DecodedCompletion(
            completion=CompletionRecord(source="in_app", occurrence_date=occurrence_date, **base),
            schema=SCHEMA_LEGACY_NO_SOURCE,
        )

    source = raw["source"]
    if source not in COMPLETION_SOURCES:
        return UnrecognizedRecord(raw=raw, reason=f"unknown source {source!r}")
    return DecodedCompletion(
        completion=CompletionRecord(source=source, occurrence_date=occurrence_date, **base),
        schema=SCHEMA_CURRENT,
    )
