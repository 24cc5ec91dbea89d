import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.clock import now_ms
from ..core.constants import (
    NOTIFICATION_ACTION_MARK_DONE,
    REMINDER_CATEGORY_ID,
    TEST_NOTIFICATION_ID,
)
from ..core.database import get_db
from ..core.notification_dispatcher import reminder_actions
from ..core.notification_runtime import NotificationRuntime, get_notifications
from ..core.notification_scheduler import NotificationContent
from ..core.records import AlertConfig
from ..core.snooze import parse_snooze_minutes_from_action
from ..core.triggers import OneShotTrigger, trigger_to_dict
from ..models import NotificationEvent, Reminder
from .routes_completions import record_completion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])
MAX_ATTEMPTS = 5
TEST_NOTIFICATION_DELAY_SECONDS = 3


class NotificationOut(BaseModel):
    id: int
    channel: str
    payload: dict
    status: str
    attempt_count: int
    last_error: Optional[str]
    locked_at: Optional[datetime]
    locked_by: Optional[str]
    sent_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class FailRequest(BaseModel):
    error_message: str


class AckResponse(BaseModel):
    ok: bool
    id: int
    status: str
    attempt_count: int
    last_error: Optional[str] = None


class ScheduledOut(BaseModel):
    identifier: str
    title: str
    reminder_id: Optional[str]
    channel_id: Optional[str]
    trigger: Dict[str, Any]


class ChannelOut(BaseModel):
    id: str
    name: str
    vibration_pattern: List[int]


class ActionRequest(BaseModel):
    action: str  # mark_done | snooze_<minutes>
    reminder_id: str


class ActionResponse(BaseModel):
    ok: bool
    action: str
    reminder_id: str
    completion_id: Optional[str] = None
    snooze_identifier: Optional[str] = None


class TestNotificationResponse(BaseModel):
    ok: bool
    identifier: str
    fires_in_seconds: int


def _event_out(evt: NotificationEvent) -> NotificationOut:
    try:
        payload = json.loads(evt.payload_json)
    except ValueError:
        payload = {}
    return NotificationOut(
        id=evt.id,
        channel=evt.channel,
        payload=payload,
        status=evt.status,
        attempt_count=evt.attempt_count,
        last_error=evt.last_error,
        locked_at=evt.locked_at,
        locked_by=evt.locked_by,
        sent_at=evt.sent_at,
        created_at=evt.created_at,
        updated_at=evt.updated_at,
    )


def _ack_response(evt: NotificationEvent) -> AckResponse:
    return AckResponse(
        ok=True,
        id=evt.id,
        status=evt.status,
        attempt_count=evt.attempt_count,
        last_error=evt.last_error,
    )


def _get_event_or_404(db: Session, event_id: int) -> NotificationEvent:
    evt = db.query(NotificationEvent).filter(NotificationEvent.id == event_id).first()
    if not evt:
        raise HTTPException(status_code=404, detail="Notification not found")
    return evt


# ---------- Outbox (consumed by the Telegram bot) ----------


@router.get("/pending", response_model=List[NotificationOut])
def pending_notifications(
    limit: int = Query(50, ge=1, le=100),
    consumer_id: str = Query("telegram-bot", min_length=1, max_length=128),
    lock_seconds: int = Query(60, ge=1, le=3600),
    db: Session = Depends(get_db),
):
    now = datetime.utcnow()
    lock_threshold = now - timedelta(seconds=lock_seconds)

    # unsent, under the retry cap, and not locked by a live consumer
    candidates = (
        db.query(NotificationEvent)
        .filter(
            NotificationEvent.sent_at.is_(None),
            NotificationEvent.attempt_count < MAX_ATTEMPTS,
            NotificationEvent.status.in_(("PENDING", "FAILED")),
            or_(
                NotificationEvent.locked_at.is_(None),
                NotificationEvent.locked_at < lock_threshold,
            ),
        )
        .order_by(NotificationEvent.created_at.asc())
        .limit(limit)
        .all()
    )

    for evt in candidates:
        evt.locked_at = now
        evt.locked_by = consumer_id
        evt.status = "SENDING"
        evt.updated_at = now
        db.add(evt)

    if candidates:
        db.commit()
        for evt in candidates:
            db.refresh(evt)

    return [_event_out(evt) for evt in candidates]


@router.post("/{event_id}/ack", response_model=AckResponse)
def ack_notification(event_id: int, db: Session = Depends(get_db)):
    evt = _get_event_or_404(db, event_id)

    now = datetime.utcnow()
    evt.status = "SENT"
    evt.sent_at = now
    evt.acked_at = now
    evt.locked_at = None
    evt.locked_by = None
    evt.updated_at = now
    db.add(evt)
    db.commit()
    db.refresh(evt)
    return _ack_response(evt)


@router.post("/{event_id}/fail", response_model=AckResponse)
def fail_notification(
    event_id: int,
    payload: FailRequest,
    db: Session = Depends(get_db),
):
    evt = _get_event_or_404(db, event_id)

    evt.attempt_count = (evt.attempt_count or 0) + 1
    evt.last_error = payload.error_message
    evt.status = "FAILED"
    evt.locked_at = None
    evt.locked_by = None
    evt.updated_at = datetime.utcnow()
    db.add(evt)
    db.commit()
    db.refresh(evt)
    return _ack_response(evt)


# ---------- Scheduler ----------


@router.get("/scheduled", response_model=List[ScheduledOut])
async def scheduled_notifications(notifications: NotificationRuntime = Depends(get_notifications)):
    if not notifications.scheduler.available:
        return []
    requests = await notifications.scheduler.list_scheduled()
    return [
        ScheduledOut(
            identifier=req.identifier,
            title=req.content.title,
            reminder_id=req.content.data.get("reminderId"),
            channel_id=req.content.channel_id,
            trigger=trigger_to_dict(req.trigger),
        )
        for req in requests
    ]


@router.get("/channels", response_model=List[ChannelOut])
def notification_channels(notifications: NotificationRuntime = Depends(get_notifications)):
    return [
        ChannelOut(id=ch.id, name=ch.name, vibration_pattern=ch.vibration_pattern)
        for ch in notifications.channels.all()
    ]


@router.get("/actions/available")
def available_actions():
    return {"category": REMINDER_CATEGORY_ID, "actions": reminder_actions()}


@router.post("/actions", response_model=ActionResponse)
async def handle_action(
    payload: ActionRequest,
    db: Session = Depends(get_db),
    notifications: NotificationRuntime = Depends(get_notifications),
):
    """A button pressed on a delivered notification: mark the reminder done or snooze it."""

    r = db.query(Reminder).filter(Reminder.id == payload.reminder_id).first()
    if not r:
        raise HTTPException(status_code=404, detail="Reminder not found")

    if payload.action == NOTIFICATION_ACTION_MARK_DONE:
        c = record_completion(db, r.id, now_ms(), "notification")
        logger.info("reminder %s marked done from notification", r.id)
        return ActionResponse(ok=True, action=payload.action, reminder_id=r.id, completion_id=c.id)

    minutes = parse_snooze_minutes_from_action(payload.action)
    if minutes is None:
        raise HTTPException(status_code=400, detail=f"Unknown action '{payload.action}'")

    identifier = await notifications.snoozer.snooze(
        r.id,
        r.title,
        minutes,
        AlertConfig(ringtone=r.ringtone or "default", vibration=r.vibration or "default"),
    )
    return ActionResponse(
        ok=identifier is not None,
        action=payload.action,
        reminder_id=r.id,
        snooze_identifier=identifier,
    )


@router.post("/test", response_model=TestNotificationResponse)
async def send_test_notification(notifications: NotificationRuntime = Depends(get_notifications)):
    if not notifications.scheduler.available:
        raise HTTPException(status_code=503, detail="Notifications are unavailable")

    content = NotificationContent(
        title="Test reminder",
        body="This is how your reminders will look.",
        channel_id=notifications.channels.ensure("default"),
    )
    await notifications.scheduler.schedule(
        TEST_NOTIFICATION_ID,
        content,
        OneShotTrigger(seconds=TEST_NOTIFICATION_DELAY_SECONDS),
    )
    return TestNotificationResponse(
        ok=True,
        identifier=TEST_NOTIFICATION_ID,
        fires_in_seconds=TEST_NOTIFICATION_DELAY_SECONDS,
    )
