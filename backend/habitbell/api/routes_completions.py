import uuid
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.clock import local_date_key, local_tz, now_ms
from ..core.database import get_db
from ..core.reminder_codec import UnrecognizedRecord, decode_completion_record
from ..models import Completion, Reminder

router = APIRouter(prefix="/completions", tags=["completions"])


class CompletionCreate(BaseModel):
    reminder_id: str
    completed_at: Optional[int] = None  # unix ms, defaults to now
    source: Literal["in_app", "notification"] = "in_app"


class CompletionOut(BaseModel):
    id: str
    reminder_id: str
    completed_at: int
    source: str
    occurrence_date: Optional[str]

    class Config:
        from_attributes = True


class CompletionImportResponse(BaseModel):
    imported: int
    legacy: int
    unrecognized: List[str]


def generate_completion_id() -> str:
    return f"cmp_{now_ms()}_{uuid.uuid4().hex[:7]}"


def record_completion(db: Session, reminder_id: str, completed_at: int, source: str) -> Completion:
    """Insert a completion, stamping its local occurrence date at write time."""

    c = Completion(
        id=generate_completion_id(),
        reminder_id=reminder_id,
        completed_at=completed_at,
        source=source,
        occurrence_date=local_date_key(completed_at, local_tz()),
    )
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@router.get("", response_model=List[CompletionOut])
def list_completions(
    reminder_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    q = db.query(Completion)
    if reminder_id is not None:
        q = q.filter(Completion.reminder_id == reminder_id)
    return q.order_by(Completion.completed_at.desc()).all()


@router.post("", response_model=CompletionOut, status_code=status.HTTP_201_CREATED)
def create_completion(payload: CompletionCreate, db: Session = Depends(get_db)):
    exists = db.query(Reminder.id).filter(Reminder.id == payload.reminder_id).first()
    if not exists:
        raise HTTPException(status_code=404, detail="Reminder not found")

    completed_at = payload.completed_at if payload.completed_at is not None else now_ms()
    return record_completion(db, payload.reminder_id, completed_at, payload.source)


@router.post("/import", response_model=CompletionImportResponse)
def import_completions(payload: List[Any], db: Session = Depends(get_db)):
    imported = 0
    legacy = 0
    rejected: List[str] = []
    tz = local_tz()

    for raw in payload:
        result = decode_completion_record(raw)
        if isinstance(result, UnrecognizedRecord):
            rejected.append(result.reason)
            continue
        rec = result.completion
        c = db.query(Completion).filter(Completion.id == rec.id).first()
        if c is None:
            c = Completion(id=rec.id)
            db.add(c)
        c.reminder_id = rec.reminder_id
        c.completed_at = rec.completed_at
        c.source = rec.source
        c.occurrence_date = rec.occurrence_date or local_date_key(rec.completed_at, tz)
        imported += 1
        if result.schema != "current":
            legacy += 1

    db.commit()
    return CompletionImportResponse(imported=imported, legacy=legacy, unrecognized=rejected)


@router.delete("/{completion_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_completion(completion_id: str, db: Session = Depends(get_db)):
    c = db.query(Completion).filter(Completion.id == completion_id).first()
    if not c:
        raise HTTPException(status_code=404, detail="Completion not found")

    db.delete(c)
    db.commit()
    return
