"""
Keeps scheduled notifications in step with reminders.

Every create or edit cancels whatever is scheduled for the reminder
(recurring slots `id`, `id#1`, ... and snoozes `snooze:id:*`) before
compiling and registering the new triggers, so no stale or duplicate
alarm survives. Calls to the scheduler are awaited one after another;
a failure on one identifier is logged and the rest still go through.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List

from .constants import REMINDER_CATEGORY_ID
from .notification_scheduler import (
    NotificationChannels,
    NotificationContent,
    NotificationScheduler,
    sound_for_ringtone,
)
from .records import ReminderRecord
from .schedule_compiler import compile_schedule
from .snooze import snooze_prefix_for_reminder
from .triggers import TriggerSpec

logger = logging.getLogger(__name__)


def notification_identifier(reminder_id: str, suffix: str) -> str:
    return reminder_id if suffix == "0" else f"{reminder_id}#{suffix}"


def belongs_to_reminder(identifier: str, reminder_id: str) -> bool:
    return (
        identifier == reminder_id
        or identifier.startswith(reminder_id + "#")
        or identifier.startswith(snooze_prefix_for_reminder(reminder_id))
    )


class NotificationReconciler:
    def __init__(
        self,
        scheduler: NotificationScheduler,
        channels: NotificationChannels,
        compiler: Callable[..., List[TriggerSpec]] = compile_schedule,
    ) -> None:
        self.scheduler = scheduler
        self.channels = channels
        self._compile = compiler

    def build_content(self, reminder: ReminderRecord) -> NotificationContent:
        return NotificationContent(
            title=reminder.title,
            body=f"Time for: {reminder.title}",
            sound=sound_for_ringtone(reminder.ringtone),
            data={"reminderId": reminder.id},
            category_identifier=REMINDER_CATEGORY_ID,
            channel_id=self.channels.ensure(reminder.vibration),
        )

    async def cancel_reminder(self, reminder_id: str) -> List[str]:
        """Cancel every scheduled request for the reminder; returns the identifiers cancelled."""

        if not self.scheduler.available:
            logger.info("notifications unavailable, skipping cancel for %s", reminder_id)
            return []

        try:
            scheduled = await self.scheduler.list_scheduled()
        except Exception:
            logger.exception("could not list scheduled notifications for %s", reminder_id)
            return []

        cancelled: List[str] = []
        for request in scheduled:
            if not belongs_to_reminder(request.identifier, reminder_id):
                continue
            try:
                await self.scheduler.cancel(request.identifier)
            except Exception:
                logger.exception("failed to cancel %s", request.identifier)
                continue
            cancelled.append(request.identifier)
        return cancelled

    async def schedule_reminder(self, reminder: ReminderRecord) -> List[str]:
        """Compile and register the reminder's triggers; returns the identifiers registered."""

        if not self.scheduler.available or not reminder.enabled:
            return []

        content = self.build_content(reminder)
        registered: List[str] = []
        for spec in self._compile(reminder.schedule):
            identifier = notification_identifier(reminder.id, spec.identifier_suffix)
            try:
                await self.scheduler.schedule(identifier, content, spec.trigger)
            except Exception:
                logger.exception("failed to schedule %s", identifier)
                continue
            registered.append(identifier)
        return registered

    async def reconcile(self, reminder: ReminderRecord) -> List[str]:
        """Create/edit path: cancel everything for the reminder, then reschedule if enabled."""

        await self.cancel_reminder(reminder.id)
        if not reminder.enabled:
            return []
        return await self.schedule_reminder(reminder)

    async def remove(self, reminder_id: str) -> List[str]:
        return await self.cancel_reminder(reminder_id)

    async def rehydrate(self, reminders: Iterable[ReminderRecord]) -> int:
        """
        Start-up resync: drop everything the scheduler knows about, then
        schedule each enabled reminder again. Returns the number registered.
        """
        if not self.scheduler.available:
            logger.info("notifications unavailable, skipping rehydrate")
            return 0

        try:
            await self.scheduler.cancel_all()
        except Exception:
            logger.exception("cancel_all failed during rehydrate")

        total = 0
        for reminder in reminders:
            if reminder.enabled:
                total += len(await self.schedule_reminder(reminder))
        logger.info("rehydrated %d scheduled notifications", total)
        return total
