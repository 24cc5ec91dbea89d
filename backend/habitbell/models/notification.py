from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from ..core.database import Base


class NotificationEvent(Base):
    """Outbox row: one delivery of a fired notification to one channel."""

    __tablename__ = "notification_events"

    id = Column(Integer, primary_key=True, index=True)
    channel = Column(String, nullable=False)
    payload_json = Column(Text, nullable=False)
    status = Column(String, default="PENDING")  # PENDING | SENDING | FAILED | SENT
    attempt_count = Column(Integer, default=0)
    last_error = Column(Text, nullable=True)

    locked_at = Column(DateTime, nullable=True)
    locked_by = Column(String, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    acked_at = Column(DateTime, nullable=True)


class ScheduledNotification(Base):
    """A registered trigger, keyed by its identifier (`id`, `id#n`, `snooze:id:ms`)."""

    __tablename__ = "scheduled_notifications"

    identifier = Column(String, primary_key=True, index=True)
    reminder_id = Column(String, nullable=True, index=True)

    trigger_json = Column(Text, nullable=False)
    content_json = Column(Text, nullable=False)

    next_fire_at = Column(DateTime, nullable=False, index=True)  # naive UTC
    last_fired_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
