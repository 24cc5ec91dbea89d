"""Next-fire computation for each trigger kind."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from habitbell.core.triggers import (
    DailyTrigger,
    IntervalTrigger,
    OneShotTrigger,
    WeeklyTrigger,
    next_fire_after,
    trigger_from_dict,
    trigger_to_dict,
)

UTC = timezone.utc
NEW_YORK = ZoneInfo("America/New_York")


class TestNextFireAfter:
    def test_interval_and_one_shot_add_seconds(self):
        after = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)
        assert next_fire_after(IntervalTrigger(600), after, UTC) == after + timedelta(minutes=10)
        assert next_fire_after(OneShotTrigger(3), after, UTC) == after + timedelta(seconds=3)

    def test_daily_later_today(self):
        after = datetime(2024, 1, 10, 7, 0, tzinfo=UTC)
        assert next_fire_after(DailyTrigger(8, 30), after, UTC) == datetime(2024, 1, 10, 8, 30, tzinfo=UTC)

    def test_daily_is_strictly_after(self):
        after = datetime(2024, 1, 10, 8, 30, tzinfo=UTC)
        assert next_fire_after(DailyTrigger(8, 30), after, UTC) == datetime(2024, 1, 11, 8, 30, tzinfo=UTC)

    def test_weekly_uses_sunday_first_numbering(self):
        # 2024-01-10 is a Wednesday; weekday 2 is Monday
        after = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)
        fire = next_fire_after(WeeklyTrigger(2, 8, 0), after, UTC)
        assert fire == datetime(2024, 1, 15, 8, 0, tzinfo=UTC)

    def test_weekly_same_day_already_passed(self):
        after = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)
        fire = next_fire_after(WeeklyTrigger(4, 8, 0), after, UTC)
        assert fire == datetime(2024, 1, 17, 8, 0, tzinfo=UTC)

    def test_daily_keeps_wall_clock_across_dst(self):
        # clocks go forward in New York on 2024-03-10
        after = datetime(2024, 3, 9, 15, 0, tzinfo=UTC)  # 10:00 EST
        first = next_fire_after(DailyTrigger(9, 0), after, NEW_YORK)
        assert first.astimezone(NEW_YORK).date().isoformat() == "2024-03-10"
        assert (first.astimezone(NEW_YORK).hour, first.astimezone(NEW_YORK).minute) == (9, 0)
        assert first.astimezone(UTC).hour == 13


class TestTriggerDict:
    def test_unknown_or_broken_payloads(self):
        assert trigger_from_dict({"type": "hourly"}) is None
        assert trigger_from_dict({"type": "daily", "hour": 8}) is None

    def test_weekly_payload(self):
        t = WeeklyTrigger(7, 22, 5)
        assert trigger_to_dict(t) == {"type": "weekly", "weekday": 7, "hour": 22, "minute": 5}
        assert trigger_from_dict(trigger_to_dict(t)) == t
