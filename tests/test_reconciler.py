"""Reconciling scheduled notifications with reminder state."""

from habitbell.core.notification_scheduler import NotificationChannels
from habitbell.core.reconciler import (
    NotificationReconciler,
    belongs_to_reminder,
    notification_identifier,
)
from habitbell.core.records import ReminderRecord
from habitbell.core.schedules import DailySchedule, IntervalSchedule, WeeklySchedule
from habitbell.core.snooze import SnoozeScheduler, is_snooze_identifier
from habitbell.core.triggers import DailyTrigger, OneShotTrigger

from tests.helpers import FakeScheduler


def reminder(rid="rem_1", enabled=True, schedule=None, **kwargs) -> ReminderRecord:
    return ReminderRecord(
        id=rid,
        title="Stretch",
        enabled=enabled,
        schedule=schedule or DailySchedule(times=["08:00", "20:00"]),
        **kwargs,
    )


def make(scheduler: FakeScheduler) -> NotificationReconciler:
    return NotificationReconciler(scheduler, NotificationChannels())


class TestIdentifiers:
    def test_suffix_zero_is_bare_id(self):
        assert notification_identifier("rem_1", "0") == "rem_1"
        assert notification_identifier("rem_1", "3") == "rem_1#3"

    def test_ownership(self):
        assert belongs_to_reminder("rem_1", "rem_1")
        assert belongs_to_reminder("rem_1#2", "rem_1")
        assert belongs_to_reminder("snooze:rem_1:1700000000000", "rem_1")
        assert not belongs_to_reminder("rem_10", "rem_1")
        assert not belongs_to_reminder("snooze:rem_10:1", "rem_1")


class TestReconcile:
    async def test_schedules_every_trigger(self, fake_scheduler):
        ids = await make(fake_scheduler).reconcile(reminder())
        assert ids == ["rem_1", "rem_1#1"]
        assert fake_scheduler.identifiers == ["rem_1", "rem_1#1"]
        assert fake_scheduler.requests["rem_1#1"].trigger == DailyTrigger(20, 0)

    async def test_edit_drops_stale_slots_and_snoozes(self, fake_scheduler):
        rec = make(fake_scheduler)
        await rec.reconcile(reminder())
        await fake_scheduler.schedule("snooze:rem_1:5", rec.build_content(reminder()), OneShotTrigger(60))

        await rec.reconcile(reminder(schedule=DailySchedule(times=["07:00"])))

        assert fake_scheduler.identifiers == ["rem_1"]
        assert fake_scheduler.requests["rem_1"].trigger == DailyTrigger(7, 0)

    async def test_repeated_reconcile_is_idempotent(self, fake_scheduler):
        rec = make(fake_scheduler)
        await rec.reconcile(reminder())
        first = dict(fake_scheduler.requests)
        await rec.reconcile(reminder())
        assert fake_scheduler.requests == first

    async def test_other_reminders_untouched(self, fake_scheduler):
        rec = make(fake_scheduler)
        await rec.reconcile(reminder("rem_10", schedule=IntervalSchedule(value=30)))
        await rec.reconcile(reminder("rem_1"))
        await rec.remove("rem_1")
        assert fake_scheduler.identifiers == ["rem_10"]

    async def test_disabled_only_cancels(self, fake_scheduler):
        rec = make(fake_scheduler)
        await rec.reconcile(reminder())
        ids = await rec.reconcile(reminder(enabled=False))
        assert ids == []
        assert fake_scheduler.identifiers == []

    async def test_schedule_failure_does_not_stop_the_rest(self, fake_scheduler):
        fake_scheduler.fail_schedule.add("rem_1")
        ids = await make(fake_scheduler).reconcile(reminder())
        assert ids == ["rem_1#1"]
        assert fake_scheduler.identifiers == ["rem_1#1"]

    async def test_cancel_failure_does_not_stop_the_rest(self, fake_scheduler):
        rec = make(fake_scheduler)
        await rec.reconcile(reminder())
        fake_scheduler.fail_cancel.add("rem_1")
        cancelled = await rec.remove("rem_1")
        assert cancelled == ["rem_1#1"]

    async def test_list_failure_is_swallowed(self, fake_scheduler):
        fake_scheduler.fail_list = True
        assert await make(fake_scheduler).remove("rem_1") == []

    async def test_unavailable_scheduler_is_a_no_op(self):
        scheduler = FakeScheduler(available=False)
        rec = make(scheduler)
        assert await rec.reconcile(reminder()) == []
        assert await rec.remove("rem_1") == []
        assert await rec.rehydrate([reminder()]) == 0
        assert scheduler.calls == []


class TestContent:
    def test_alert_config_flows_into_content(self, fake_scheduler):
        rec = make(fake_scheduler)
        content = rec.build_content(reminder(ringtone="none", vibration="strong"))
        assert content.sound is None
        assert content.channel_id == "reminder-alerts-strong"
        assert content.data == {"reminderId": "rem_1"}
        assert rec.channels.is_set_up("strong")

    def test_unknown_vibration_uses_default_channel(self, fake_scheduler):
        content = make(fake_scheduler).build_content(reminder(vibration="buzz"))
        assert content.channel_id == "reminder-alerts-default"


class TestRehydrate:
    async def test_clears_then_schedules_enabled(self, fake_scheduler):
        await fake_scheduler.schedule("leftover", make(fake_scheduler).build_content(reminder()), OneShotTrigger(5))
        total = await make(fake_scheduler).rehydrate([
            reminder("rem_1"),
            reminder("rem_2", enabled=False),
            reminder("rem_3", schedule=WeeklySchedule(weekdays=[2, 3], times=["09:00"])),
        ])
        assert total == 4
        assert fake_scheduler.identifiers == ["rem_1", "rem_1#1", "rem_3", "rem_3#1"]
        assert ("cancel_all", "") in fake_scheduler.calls


class TestDisjointIdentifiers:
    async def test_snoozes_never_collide_with_recurring_slots(self, fake_scheduler):
        rec = make(fake_scheduler)
        recurring = await rec.reconcile(reminder(schedule=WeeklySchedule(weekdays=[1, 2, 3], times=["08:00", "20:00"])))
        snooze_id = await SnoozeScheduler(fake_scheduler, rec.channels, clock=lambda: 0).snooze("rem_1", "Stretch", 5)

        assert snooze_id not in recurring
        assert not any(is_snooze_identifier(i) for i in recurring)
        assert len(fake_scheduler.requests) == len(recurring) + 1
