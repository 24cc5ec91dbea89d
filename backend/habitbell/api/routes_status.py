from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.clock import local_date_key, local_tz, to_local, utc_now
from ..core.database import get_db
from ..core.streaks import compute_streak
from ..models import Completion, Reminder, ScheduledNotification

router = APIRouter(tags=["status"])


class NextNotificationItem(BaseModel):
    identifier: str
    reminder_id: str | None
    fire_at: datetime


class BestStreakItem(BaseModel):
    reminder_id: str
    title: str
    current_streak: int


class StatusTodayResponse(BaseModel):
    now: datetime
    date: str
    reminders_total: int
    reminders_enabled: int
    completions_today: int
    done_reminder_ids: list[str]
    best_streak: BestStreakItem | None
    next_notification: NextNotificationItem | None


@router.get("/health")
def health():
    return {"status": "ok", "time": datetime.utcnow().isoformat() + "Z"}


@router.get("/status/today", response_model=StatusTodayResponse)
def status_today(db: Session = Depends(get_db)):
    now = utc_now()
    tz = local_tz()
    today = to_local(now, tz).date().isoformat()

    reminders = db.query(Reminder).all()
    completions = db.query(Completion).all()

    # --- Today's completions ---
    done_today = [
        c for c in completions
        if (c.occurrence_date or local_date_key(c.completed_at, tz)) == today
    ]
    done_ids = sorted({c.reminder_id for c in done_today})

    # --- Best running streak ---
    by_reminder: dict[str, list[int]] = {}
    for c in completions:
        by_reminder.setdefault(c.reminder_id, []).append(c.completed_at)

    best: BestStreakItem | None = None
    for r in reminders:
        streak = compute_streak(by_reminder.get(r.id, []), now=now, tz=tz)
        if streak.current_streak == 0:
            continue
        if best is None or streak.current_streak > best.current_streak:
            best = BestStreakItem(reminder_id=r.id, title=r.title, current_streak=streak.current_streak)

    # --- Next scheduled notification ---
    nxt = (
        db.query(ScheduledNotification)
        .order_by(ScheduledNotification.next_fire_at.asc())
        .first()
    )
    next_item = None
    if nxt:
        next_item = NextNotificationItem(
            identifier=nxt.identifier,
            reminder_id=nxt.reminder_id,
            fire_at=nxt.next_fire_at,
        )

    return StatusTodayResponse(
        now=now,
        date=today,
        reminders_total=len(reminders),
        reminders_enabled=sum(1 for r in reminders if r.enabled),
        completions_today=len(done_today),
        done_reminder_ids=done_ids,
        best_streak=best,
        next_notification=next_item,
    )
