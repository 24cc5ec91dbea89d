from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone, tzinfo
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..models import ScheduledNotification, TelegramChat
from .clock import local_tz, utc_now
from .constants import NOTIFICATION_ACTION_MARK_DONE
from .database import SessionLocal
from .notification_scheduler import content_from_json
from .notifications import NotificationOutbox
from .snooze import snooze_action_identifier
from .triggers import IntervalTrigger, OneShotTrigger, next_fire_after, trigger_from_dict

logger = logging.getLogger(__name__)


def reminder_actions(durations: Optional[List[int]] = None) -> List[dict]:
    """Action buttons attached to a reminder notification."""

    durations = settings.snooze_durations_minutes if durations is None else durations
    actions = [{"id": NOTIFICATION_ACTION_MARK_DONE, "title": "Done"}]
    for mins in durations:
        actions.append({"id": snooze_action_identifier(mins), "title": f"Snooze {mins} min"})
    return actions


def _naive_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


async def dispatch_due_notifications(
    db: Session,
    outbox: NotificationOutbox,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> int:
    """
    Fire every scheduled notification whose time has come: one outbox event
    per enabled Telegram chat, then move repeating ones to their next time
    and drop one-shots. Returns the number of scheduled notifications fired.
    """
    tz = tz or local_tz()
    due = (
        db.query(ScheduledNotification)
        .filter(ScheduledNotification.next_fire_at <= _naive_utc(now))
        .order_by(ScheduledNotification.next_fire_at.asc())
        .all()
    )
    if not due:
        return 0

    chats = db.query(TelegramChat).filter(TelegramChat.enabled == True).all()  # noqa: E712
    if not chats:
        logger.debug("no telegram chats registered, %d notifications fire silently", len(due))

    fired = 0
    for row in due:
        trigger = trigger_from_dict(json.loads(row.trigger_json))
        if trigger is None:
            logger.warning("dropping scheduled notification %s with unreadable trigger", row.identifier)
            db.delete(row)
            db.commit()
            continue

        content = content_from_json(row.content_json)
        reminder_id = content.data.get("reminderId")

        for chat in chats:
            await outbox.emit(
                db,
                {
                    "channel": "telegram",
                    "chat_id": chat.chat_id,
                    "text": f"⏰ {content.title}\n{content.body}",
                    "identifier": row.identifier,
                    "reminder_id": reminder_id,
                    "sound": content.sound,
                    "channel_id": content.channel_id,
                    "actions": reminder_actions() if reminder_id else [],
                },
            )
            chat.last_notified_at = _naive_utc(now)

        one_off = isinstance(trigger, OneShotTrigger) or (
            isinstance(trigger, IntervalTrigger) and not trigger.repeats
        )
        if one_off:
            db.delete(row)
        else:
            row.last_fired_at = _naive_utc(now)
            row.next_fire_at = _naive_utc(next_fire_after(trigger, now, tz))
        db.commit()
        fired += 1

    return fired


async def notification_dispatch_loop(outbox: NotificationOutbox, interval_seconds: Optional[int] = None) -> None:
    """
    Background loop that periodically fires due scheduled notifications.
    """
    interval_seconds = interval_seconds or settings.dispatch_interval_seconds
    while True:
        db = SessionLocal()
        try:
            fired = await dispatch_due_notifications(db, outbox, utc_now())
            if fired:
                logger.info("dispatched %d notifications", fired)
        except Exception:
            logger.exception("dispatch iteration failed")
        finally:
            db.close()

        await asyncio.sleep(interval_seconds)
