"""
Process-scoped notification state: one scheduler, its channel registry,
the reconciler and snooze scheduler built on them, and the outbox. Created
once at startup and handed to routes through `get_notifications`.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import Request
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Reminder
from .database import SessionLocal
from .notification_scheduler import (
    DatabaseNotificationScheduler,
    NotificationChannels,
    NotificationScheduler,
)
from .notifications import NotificationOutbox
from .reconciler import NotificationReconciler
from .records import ReminderRecord
from .reminder_codec import UnrecognizedRecord, decode_reminder_record
from .snooze import SnoozeScheduler

logger = logging.getLogger(__name__)


class NotificationRuntime:
    def __init__(self, scheduler: NotificationScheduler, outbox: NotificationOutbox | None = None) -> None:
        self.scheduler = scheduler
        self.channels = NotificationChannels()
        self.reconciler = NotificationReconciler(scheduler, self.channels)
        self.snoozer = SnoozeScheduler(scheduler, self.channels)
        self.outbox = outbox or NotificationOutbox()


def build_runtime() -> NotificationRuntime:
    scheduler = DatabaseNotificationScheduler(
        SessionLocal,
        available=settings.notifications_enabled,
    )
    return NotificationRuntime(scheduler)


def load_reminder_records(db: Session) -> List[ReminderRecord]:
    """Decode every stored reminder; rows matching no known schema are logged and skipped."""

    records: List[ReminderRecord] = []
    for row in db.query(Reminder).order_by(Reminder.created_at).all():
        result = decode_reminder_record(row.to_raw())
        if isinstance(result, UnrecognizedRecord):
            logger.warning("skipping unrecognized reminder row %s: %s", row.id, result.reason)
            continue
        records.append(result.reminder)
    return records


# FastAPI dependency
def get_notifications(request: Request) -> NotificationRuntime:
    return request.app.state.notifications
