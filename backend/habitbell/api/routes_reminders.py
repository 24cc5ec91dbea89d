import json
import logging
import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..core.clock import local_tz, now_ms, utc_now
from ..core.constants import VIBRATION_PATTERNS
from ..core.database import get_db
from ..core.notification_runtime import NotificationRuntime, get_notifications
from ..core.reconciler import notification_identifier
from ..core.records import AlertConfig, ReminderRecord
from ..core.reminder_codec import UnrecognizedRecord, decode_reminder_record
from ..core.schedule_compiler import compile_schedule
from ..core.schedule_label import schedule_label
from ..core.schedules import (
    DailySchedule,
    IntervalSchedule,
    ScheduleConfig,
    WeeklySchedule,
    schedule_to_dict,
)
from ..core.streaks import compute_streak
from ..core.triggers import trigger_to_dict
from ..models import Completion, Reminder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reminders", tags=["reminders"])


# ---------- Pydantic schemas ----------

class IntervalScheduleIn(BaseModel):
    kind: Literal["interval"]
    value: int
    unit: Literal["minutes", "hours"] = "minutes"

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v


class DailyScheduleIn(BaseModel):
    kind: Literal["daily"]
    # empty or malformed times are normalized when compiled
    times: List[str] = []


class WeeklyScheduleIn(BaseModel):
    kind: Literal["weekly"]
    weekdays: List[int] = []  # 1=Sun .. 7=Sat
    times: List[str] = []

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v: List[int]) -> List[int]:
        for d in v:
            if d < 1 or d > 7:
                raise ValueError("weekdays entries must be between 1 and 7")
        return v


ScheduleIn = Annotated[
    Union[IntervalScheduleIn, DailyScheduleIn, WeeklyScheduleIn],
    Field(discriminator="kind"),
]


def _schedule_from_payload(s: Union[IntervalScheduleIn, DailyScheduleIn, WeeklyScheduleIn]) -> ScheduleConfig:
    if isinstance(s, IntervalScheduleIn):
        return IntervalSchedule(value=s.value, unit=s.unit)
    if isinstance(s, DailyScheduleIn):
        return DailySchedule(times=list(s.times))
    return WeeklySchedule(weekdays=list(s.weekdays), times=list(s.times))


def _validate_vibration(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in VIBRATION_PATTERNS:
        raise ValueError(f"vibration must be one of {sorted(VIBRATION_PATTERNS)}")
    return v


class ReminderBase(BaseModel):
    title: str
    enabled: bool = True
    schedule: ScheduleIn
    ringtone: str = "default"  # none | default | custom:<uri>
    vibration: str = "default"
    category_id: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title is required")
        return v

    @field_validator("vibration")
    @classmethod
    def validate_vibration(cls, v: str) -> str:
        return _validate_vibration(v)


class ReminderCreate(ReminderBase):
    pass


class ReminderUpdate(BaseModel):
    title: Optional[str] = None
    enabled: Optional[bool] = None
    schedule: Optional[ScheduleIn] = None
    ringtone: Optional[str] = None
    vibration: Optional[str] = None
    category_id: Optional[str] = None

    @field_validator("vibration")
    @classmethod
    def validate_vibration(cls, v: Optional[str]) -> Optional[str]:
        return _validate_vibration(v)


class EnabledRequest(BaseModel):
    enabled: bool


class SnoozeRequest(BaseModel):
    minutes: int = 10


class SnoozeResponse(BaseModel):
    reminder_id: str
    identifier: Optional[str]
    scheduled: bool


class ReminderOut(BaseModel):
    id: str
    title: str
    enabled: bool
    schedule: Dict[str, Any]
    schedule_label: str
    ringtone: str
    vibration: str
    category_id: Optional[str]
    created_at: int


class TriggerOut(BaseModel):
    identifier: str
    trigger: Dict[str, Any]


class StreakOut(BaseModel):
    reminder_id: str
    current_streak: int
    longest_streak: int


class ImportedItem(BaseModel):
    id: str
    schema_name: str


class RejectedItem(BaseModel):
    index: int
    reason: str


class ImportResponse(BaseModel):
    imported: List[ImportedItem]
    unrecognized: List[RejectedItem]


# ---------- Helper functions ----------

def generate_reminder_id() -> str:
    return f"rem_{now_ms()}_{uuid.uuid4().hex[:7]}"


def _get_row_or_404(db: Session, reminder_id: str) -> Reminder:
    r = db.query(Reminder).filter(Reminder.id == reminder_id).first()
    if not r:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return r


def _record_for_row(r: Reminder) -> ReminderRecord:
    result = decode_reminder_record(r.to_raw())
    if isinstance(result, UnrecognizedRecord):
        raise HTTPException(status_code=409, detail=f"Stored reminder is unreadable: {result.reason}")
    return result.reminder


def _apply_record(r: Reminder, record: ReminderRecord) -> None:
    r.title = record.title
    r.enabled = record.enabled
    r.schedule_json = json.dumps(schedule_to_dict(record.schedule))
    r.ringtone = record.ringtone
    r.vibration = record.vibration
    r.category_id = record.category_id
    r.created_at = record.created_at
    r.updated_at = datetime.utcnow()


def _to_out(record: ReminderRecord) -> ReminderOut:
    return ReminderOut(
        id=record.id,
        title=record.title,
        enabled=record.enabled,
        schedule=schedule_to_dict(record.schedule),
        schedule_label=schedule_label(record.schedule),
        ringtone=record.ringtone,
        vibration=record.vibration,
        category_id=record.category_id,
        created_at=record.created_at,
    )


# ---------- CRUD endpoints ----------


@router.get("", response_model=List[ReminderOut])
def list_reminders(db: Session = Depends(get_db)):
    out: List[ReminderOut] = []
    for r in db.query(Reminder).order_by(Reminder.created_at).all():
        result = decode_reminder_record(r.to_raw())
        if isinstance(result, UnrecognizedRecord):
            logger.warning("skipping unreadable reminder %s: %s", r.id, result.reason)
            continue
        out.append(_to_out(result.reminder))
    return out


@router.post("", response_model=ReminderOut, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    payload: ReminderCreate,
    db: Session = Depends(get_db),
    notifications: NotificationRuntime = Depends(get_notifications),
):
    record = ReminderRecord(
        id=generate_reminder_id(),
        title=payload.title,
        enabled=payload.enabled,
        schedule=_schedule_from_payload(payload.schedule),
        ringtone=payload.ringtone,
        vibration=payload.vibration,
        category_id=payload.category_id,
        created_at=now_ms(),
    )
    r = Reminder(id=record.id)
    _apply_record(r, record)
    db.add(r)
    db.commit()

    await notifications.reconciler.reconcile(record)
    return _to_out(record)


@router.post("/import", response_model=ImportResponse)
async def import_reminders(
    payload: List[Any],
    db: Session = Depends(get_db),
    notifications: NotificationRuntime = Depends(get_notifications),
):
    """Import stored reminder records (current or legacy shape), replacing same-id rows."""

    imported: List[ImportedItem] = []
    rejected: List[RejectedItem] = []
    records: List[ReminderRecord] = []

    for idx, raw in enumerate(payload):
        result = decode_reminder_record(raw)
        if isinstance(result, UnrecognizedRecord):
            rejected.append(RejectedItem(index=idx, reason=result.reason))
            continue
        record = result.reminder
        r = db.query(Reminder).filter(Reminder.id == record.id).first()
        if r is None:
            r = Reminder(id=record.id)
            db.add(r)
        _apply_record(r, record)
        records.append(record)
        imported.append(ImportedItem(id=record.id, schema_name=result.schema))

    db.commit()

    for record in records:
        await notifications.reconciler.reconcile(record)

    return ImportResponse(imported=imported, unrecognized=rejected)


@router.get("/{reminder_id}", response_model=ReminderOut)
def get_reminder(reminder_id: str, db: Session = Depends(get_db)):
    return _to_out(_record_for_row(_get_row_or_404(db, reminder_id)))


@router.patch("/{reminder_id}", response_model=ReminderOut)
async def update_reminder(
    reminder_id: str,
    payload: ReminderUpdate,
    db: Session = Depends(get_db),
    notifications: NotificationRuntime = Depends(get_notifications),
):
    r = _get_row_or_404(db, reminder_id)
    prev = _record_for_row(r)

    data = payload.model_dump(exclude_unset=True)
    title = prev.title
    if data.get("title") is not None:
        title = data["title"].strip()
        if not title:
            raise HTTPException(status_code=400, detail="title is required")

    # schedule is replaced wholesale, never merged
    schedule = prev.schedule
    if payload.schedule is not None:
        schedule = _schedule_from_payload(payload.schedule)

    updated = ReminderRecord(
        id=prev.id,
        title=title,
        enabled=data["enabled"] if data.get("enabled") is not None else prev.enabled,
        schedule=schedule,
        ringtone=data.get("ringtone") or prev.ringtone,
        vibration=data.get("vibration") or prev.vibration,
        category_id=data["category_id"] if "category_id" in data else prev.category_id,
        created_at=prev.created_at,
    )
    _apply_record(r, updated)
    db.add(r)
    db.commit()

    await notifications.reconciler.reconcile(updated)
    return _to_out(updated)


@router.post("/{reminder_id}/enabled", response_model=ReminderOut)
async def set_enabled(
    reminder_id: str,
    payload: EnabledRequest,
    db: Session = Depends(get_db),
    notifications: NotificationRuntime = Depends(get_notifications),
):
    return await update_reminder(
        reminder_id,
        ReminderUpdate(enabled=payload.enabled),
        db=db,
        notifications=notifications,
    )


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: str,
    db: Session = Depends(get_db),
    notifications: NotificationRuntime = Depends(get_notifications),
):
    r = _get_row_or_404(db, reminder_id)

    # cancel first so a failed delete never leaves orphaned alarms
    await notifications.reconciler.remove(reminder_id)

    db.query(Completion).filter(Completion.reminder_id == reminder_id).delete()
    db.delete(r)
    db.commit()
    return


# ---------- Scheduling endpoints ----------


@router.post("/{reminder_id}/snooze", response_model=SnoozeResponse)
async def snooze_reminder(
    reminder_id: str,
    payload: SnoozeRequest,
    db: Session = Depends(get_db),
    notifications: NotificationRuntime = Depends(get_notifications),
):
    record = _record_for_row(_get_row_or_404(db, reminder_id))
    identifier = await notifications.snoozer.snooze(
        record.id,
        record.title,
        payload.minutes,
        AlertConfig(ringtone=record.ringtone, vibration=record.vibration),
    )
    return SnoozeResponse(reminder_id=record.id, identifier=identifier, scheduled=identifier is not None)


@router.get("/{reminder_id}/triggers", response_model=List[TriggerOut])
def preview_triggers(reminder_id: str, db: Session = Depends(get_db)):
    record = _record_for_row(_get_row_or_404(db, reminder_id))
    return [
        TriggerOut(
            identifier=notification_identifier(record.id, spec.identifier_suffix),
            trigger=trigger_to_dict(spec.trigger),
        )
        for spec in compile_schedule(record.schedule)
    ]


@router.get("/{reminder_id}/streak", response_model=StreakOut)
def get_streak(reminder_id: str, db: Session = Depends(get_db)):
    _get_row_or_404(db, reminder_id)
    timestamps = [
        c.completed_at
        for c in db.query(Completion).filter(Completion.reminder_id == reminder_id).all()
    ]
    result = compute_streak(timestamps, now=utc_now(), tz=local_tz())
    return StreakOut(
        reminder_id=reminder_id,
        current_streak=result.current_streak,
        longest_streak=result.longest_streak,
    )
