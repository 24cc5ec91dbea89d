from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..config import settings
from ..core import analytics
from ..core.clock import local_tz, utc_now
from ..core.database import get_db
from ..core.records import CompletionRecord
from ..models import Category, Completion, Reminder

router = APIRouter(prefix="/analytics", tags=["analytics"])


class DayCountOut(BaseModel):
    date: str
    label: str
    count: int


class CompletionRateOut(BaseModel):
    days: int
    percentage: int


class CategorySegmentOut(BaseModel):
    category_id: Optional[str]
    category_name: str
    count: int


class SnapshotOut(BaseModel):
    total_completions: int
    total_completions_this_week: int
    completion_percentage: int
    weekly_trend: List[DayCountOut]


def _completions(db: Session) -> List[CompletionRecord]:
    return [c.to_record() for c in db.query(Completion).all()]


@router.get("/weekly-trend", response_model=List[DayCountOut])
def weekly_trend(
    days: int = Query(7, ge=1, le=366),
    db: Session = Depends(get_db),
):
    trend = analytics.weekly_trend(_completions(db), days, now=utc_now(), tz=local_tz())
    return [DayCountOut(date=d.date, label=d.label, count=d.count) for d in trend]


@router.get("/completion-rate", response_model=CompletionRateOut)
def completion_rate(
    days: int = Query(7, ge=1, le=366),
    db: Session = Depends(get_db),
):
    pct = analytics.completion_percentage(_completions(db), days, now=utc_now(), tz=local_tz())
    return CompletionRateOut(days=days, percentage=pct)


@router.get("/categories", response_model=List[CategorySegmentOut])
def categories(db: Session = Depends(get_db)):
    reminder_to_category: Dict[str, Optional[str]] = {
        r.id: r.category_id for r in db.query(Reminder.id, Reminder.category_id).all()
    }
    category_to_name: Dict[str, str] = {c.id: c.name for c in db.query(Category).all()}

    segments = analytics.distribution_by_category(
        _completions(db),
        reminder_to_category,
        category_to_name,
        uncategorized_label=settings.uncategorized_label,
    )
    return [
        CategorySegmentOut(category_id=s.category_id, category_name=s.category_name, count=s.count)
        for s in segments
    ]


@router.get("/snapshot", response_model=SnapshotOut)
def snapshot(db: Session = Depends(get_db)):
    snap = analytics.stats_snapshot(_completions(db), now=utc_now(), tz=local_tz())
    return SnapshotOut(
        total_completions=snap.total_completions,
        total_completions_this_week=snap.total_completions_this_week,
        completion_percentage=snap.completion_percentage,
        weekly_trend=[DayCountOut(date=d.date, label=d.label, count=d.count) for d in snap.weekly_trend],
    )
