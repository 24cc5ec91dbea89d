"""
Notification scheduler boundary.

The reconciler and snooze code only talk to a `NotificationScheduler`:
list what is scheduled, cancel by identifier, schedule a request, cancel
everything. `DatabaseNotificationScheduler` is the implementation used by
the service; it persists requests in `scheduled_notifications` and the
dispatcher loop fires them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from ..models import ScheduledNotification
from .clock import local_tz, utc_now
from .constants import NOTIFICATION_CHANNEL_ID, VIBRATION_PATTERNS
from .triggers import Trigger, next_fire_after, trigger_from_dict, trigger_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str
    sound: Optional[str] = "default"
    data: Dict[str, Any] = field(default_factory=dict)
    category_identifier: Optional[str] = None
    channel_id: Optional[str] = None


@dataclass(frozen=True)
class ScheduledRequest:
    identifier: str
    content: NotificationContent
    trigger: Trigger


class NotificationScheduler(Protocol):
    available: bool

    async def list_scheduled(self) -> List[ScheduledRequest]: ...

    async def cancel(self, identifier: str) -> None: ...

    async def schedule(self, identifier: str, content: NotificationContent, trigger: Trigger) -> None: ...

    async def cancel_all(self) -> None: ...


@dataclass(frozen=True)
class ChannelDefinition:
    id: str
    name: str
    vibration_pattern: List[int]


class NotificationChannels:
    """
    Per-vibration delivery channels. `ensure` is idempotent: the first call
    for a vibration sets the channel up, later calls just return its id.
    """

    def __init__(self) -> None:
        self._channels: Dict[str, ChannelDefinition] = {}

    @staticmethod
    def channel_id(vibration: str) -> str:
        return f"{NOTIFICATION_CHANNEL_ID}-{vibration}"

    def ensure(self, vibration: Optional[str]) -> str:
        vibration = vibration if vibration in VIBRATION_PATTERNS else "default"
        channel_id = self.channel_id(vibration)
        if channel_id not in self._channels:
            self._channels[channel_id] = ChannelDefinition(
                id=channel_id,
                name="Reminders" if vibration == "default" else f"Reminders ({vibration})",
                vibration_pattern=list(VIBRATION_PATTERNS[vibration]),
            )
            logger.info("notification channel %s set up", channel_id)
        return channel_id

    def is_set_up(self, vibration: str) -> bool:
        return self.channel_id(vibration) in self._channels

    def all(self) -> List[ChannelDefinition]:
        return list(self._channels.values())


def sound_for_ringtone(ringtone: Optional[str]) -> Optional[str]:
    """"none" is silent; built-in and custom ringtones play the default sound."""

    return None if ringtone == "none" else "default"


def content_to_json(content: NotificationContent) -> str:
    return json.dumps(asdict(content))


def content_from_json(payload: str) -> NotificationContent:
    data = json.loads(payload)
    return NotificationContent(**data)


def _naive_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


class DatabaseNotificationScheduler:
    """Scheduler backed by the `scheduled_notifications` table."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        available: bool = True,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self.available = available
        self._tz = tz
        self._clock = clock

    async def list_scheduled(self) -> List[ScheduledRequest]:
        db = self._session_factory()
        try:
            rows = db.query(ScheduledNotification).order_by(ScheduledNotification.created_at).all()
            out: List[ScheduledRequest] = []
            for row in rows:
                trigger = trigger_from_dict(json.loads(row.trigger_json))
                if trigger is None:
                    logger.warning("scheduled notification %s has an unreadable trigger", row.identifier)
                    continue
                out.append(
                    ScheduledRequest(
                        identifier=row.identifier,
                        content=content_from_json(row.content_json),
                        trigger=trigger,
                    )
                )
            return out
        finally:
            db.close()

    async def cancel(self, identifier: str) -> None:
        db = self._session_factory()
        try:
            db.query(ScheduledNotification).filter(
                ScheduledNotification.identifier == identifier
            ).delete()
            db.commit()
        finally:
            db.close()

    async def schedule(self, identifier: str, content: NotificationContent, trigger: Trigger) -> None:
        now = self._clock()
        fire_at = next_fire_after(trigger, now, self._tz or local_tz())

        db = self._session_factory()
        try:
            # same identifier replaces the previous request
            row = db.query(ScheduledNotification).filter(
                ScheduledNotification.identifier == identifier
            ).first()
            if row is None:
                row = ScheduledNotification(identifier=identifier, created_at=_naive_utc(now))
                db.add(row)
            row.reminder_id = content.data.get("reminderId")
            row.trigger_json = json.dumps(trigger_to_dict(trigger))
            row.content_json = content_to_json(content)
            row.next_fire_at = _naive_utc(fire_at)
            db.commit()
        finally:
            db.close()

    async def cancel_all(self) -> None:
        db = self._session_factory()
        try:
            db.query(ScheduledNotification).delete()
            db.commit()
        finally:
            db.close()
