"""
Snooze: one extra, non-repeating notification for a reminder.

Snooze identifiers live in their own namespace, `snooze:<reminder_id>:<ms>`,
so they never collide with recurring ones (`id`, `id#n`) while the
reconciler can still sweep them by prefix when the reminder changes.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .clock import now_ms
from .constants import REMINDER_CATEGORY_ID, SNOOZE_ACTION_PREFIX
from .notification_scheduler import (
    NotificationChannels,
    NotificationContent,
    NotificationScheduler,
    sound_for_ringtone,
)
from .records import AlertConfig
from .triggers import OneShotTrigger

logger = logging.getLogger(__name__)

SNOOZE_ID_PREFIX = "snooze:"

MIN_SNOOZE_SECONDS = 1
MAX_SNOOZE_SECONDS = 24 * 60 * 60


def is_snooze_identifier(identifier: str) -> bool:
    return identifier.startswith(SNOOZE_ID_PREFIX)


def snooze_prefix_for_reminder(reminder_id: str) -> str:
    return f"{SNOOZE_ID_PREFIX}{reminder_id}:"


def snooze_identifier(reminder_id: str, timestamp_ms: int) -> str:
    return f"{snooze_prefix_for_reminder(reminder_id)}{timestamp_ms}"


def snooze_seconds(duration_minutes: float) -> int:
    return max(MIN_SNOOZE_SECONDS, min(MAX_SNOOZE_SECONDS, int(duration_minutes * 60)))


def snooze_action_identifier(minutes: int) -> str:
    return f"{SNOOZE_ACTION_PREFIX}{minutes}"


def parse_snooze_minutes_from_action(action_identifier: str) -> Optional[int]:
    """"snooze_10" -> 10. None when it is not a snooze action."""

    if not action_identifier.startswith(SNOOZE_ACTION_PREFIX):
        return None
    try:
        minutes = int(action_identifier[len(SNOOZE_ACTION_PREFIX):])
    except ValueError:
        return None
    return minutes if minutes >= 1 else None


class SnoozeScheduler:
    def __init__(
        self,
        scheduler: NotificationScheduler,
        channels: NotificationChannels,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.scheduler = scheduler
        self.channels = channels
        self._clock = clock
        self._last_stamp = 0

    def _next_stamp(self) -> int:
        # strictly increasing, so two snoozes in the same millisecond still differ
        stamp = max(self._clock(), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    async def snooze(
        self,
        reminder_id: str,
        title: str,
        duration_minutes: int,
        alert_config: Optional[AlertConfig] = None,
    ) -> Optional[str]:
        """Schedule the one-off notification; returns its identifier, or None if nothing was scheduled."""

        if not self.scheduler.available:
            logger.info("notifications unavailable, snooze for %s ignored", reminder_id)
            return None

        vibration = alert_config.vibration if alert_config else "default"
        sound = sound_for_ringtone(alert_config.ringtone) if alert_config else "default"
        identifier = snooze_identifier(reminder_id, self._next_stamp())

        content = NotificationContent(
            title=title,
            body=f"Time for: {title}",
            sound=sound,
            data={"reminderId": reminder_id},
            category_identifier=REMINDER_CATEGORY_ID,
            channel_id=self.channels.ensure(vibration),
        )
        try:
            await self.scheduler.schedule(
                identifier, content, OneShotTrigger(seconds=snooze_seconds(duration_minutes))
            )
        except Exception:
            logger.exception("failed to schedule snooze %s", identifier)
            return None
        return identifier
