"""Decoding stored reminder and completion records, current and legacy."""

import pytest

from habitbell.core.reminder_codec import (
    SCHEMA_CURRENT,
    SCHEMA_LEGACY_INTERVAL_TYPE,
    SCHEMA_LEGACY_NO_SOURCE,
    DecodedCompletion,
    DecodedReminder,
    UnrecognizedRecord,
    decode_completion_record,
    decode_reminder_record,
)
from habitbell.core.schedules import DailySchedule, IntervalSchedule, WeeklySchedule


def base_reminder(**extra):
    raw = {"id": "rem_1", "title": "Drink water", "enabled": True, "createdAt": 1700000000000}
    raw.update(extra)
    return raw


class TestDecodeReminder:
    def test_current_schema(self):
        raw = base_reminder(
            schedule={"kind": "weekly", "weekdays": [2, 6], "times": ["08:00"]},
            ringtone="custom:file:///bell.mp3",
            vibration="strong",
            categoryId="cat_1",
        )
        result = decode_reminder_record(raw)
        assert isinstance(result, DecodedReminder)
        assert result.schema == SCHEMA_CURRENT
        r = result.reminder
        assert r.schedule == WeeklySchedule(weekdays=[2, 6], times=["08:00"])
        assert (r.ringtone, r.vibration, r.category_id) == ("custom:file:///bell.mp3", "strong", "cat_1")

    def test_current_defaults(self):
        result = decode_reminder_record(base_reminder(schedule={"kind": "interval", "value": 30, "unit": "minutes"}))
        assert isinstance(result, DecodedReminder)
        assert (result.reminder.ringtone, result.reminder.vibration) == ("default", "default")
        assert result.reminder.category_id is None

    @pytest.mark.parametrize(
        ("legacy", "schedule"),
        [
            ({"intervalType": "hourly"}, IntervalSchedule(value=60)),
            ({"intervalType": "daily", "dailyTime": "07:45"}, DailySchedule(times=["07:45"])),
            ({"intervalType": "daily"}, DailySchedule(times=["09:00"])),
            ({"intervalType": "custom", "customIntervalMinutes": 20}, IntervalSchedule(value=20)),
            ({"intervalType": "custom"}, IntervalSchedule(value=60)),
        ],
    )
    def test_legacy_interval_type(self, legacy, schedule):
        result = decode_reminder_record(base_reminder(**legacy))
        assert isinstance(result, DecodedReminder)
        assert result.schema == SCHEMA_LEGACY_INTERVAL_TYPE
        assert result.reminder.schedule == schedule

    def test_legacy_sound_flag_maps_to_ringtone(self):
        silent = decode_reminder_record(base_reminder(intervalType="hourly", soundEnabled=False))
        loud = decode_reminder_record(base_reminder(intervalType="hourly", soundEnabled=True))
        assert silent.reminder.ringtone == "none"
        assert loud.reminder.ringtone == "default"

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            base_reminder(),
            base_reminder(schedule={"kind": "monthly"}),
            base_reminder(intervalType="yearly"),
            base_reminder(schedule={"kind": "daily", "times": []}, enabled="yes"),
            {"title": "no id", "enabled": True, "createdAt": 1, "schedule": {"kind": "daily", "times": []}},
        ],
    )
    def test_unrecognized(self, raw):
        result = decode_reminder_record(raw)
        assert isinstance(result, UnrecognizedRecord)
        assert result.reason
        assert result.raw is raw


class TestDecodeCompletion:
    def test_current(self):
        raw = {"id": "c1", "reminderId": "rem_1", "completedAt": 1700000000000, "source": "notification",
               "occurrenceDate": "2023-11-14"}
        result = decode_completion_record(raw)
        assert isinstance(result, DecodedCompletion)
        assert result.schema == SCHEMA_CURRENT
        assert result.completion.source == "notification"
        assert result.completion.occurrence_date == "2023-11-14"

    def test_legacy_without_source(self):
        result = decode_completion_record({"id": "c1", "reminderId": "rem_1", "completedAt": 1700000000000})
        assert isinstance(result, DecodedCompletion)
        assert result.schema == SCHEMA_LEGACY_NO_SOURCE
        assert result.completion.source == "in_app"
        assert result.completion.occurrence_date is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"id": "c1", "reminderId": "rem_1", "completedAt": "yesterday"},
            {"id": "c1", "completedAt": 1},
            {"id": "c1", "reminderId": "rem_1", "completedAt": 1, "source": "watch"},
            "c1",
        ],
    )
    def test_unrecognized(self, raw):
        assert isinstance(decode_completion_record(raw), UnrecognizedRecord)
