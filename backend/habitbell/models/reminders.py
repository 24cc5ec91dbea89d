import json
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Column, DateTime, String, Text

from ..core.database import Base
from ..core.records import CompletionRecord


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    enabled = Column(Boolean, default=True)

    # {"kind": "interval"|"daily"|"weekly", ...}; older rows may hold legacy shapes
    schedule_json = Column(Text, nullable=False)

    ringtone = Column(String, default="default")  # none | default | custom:<uri>
    vibration = Column(String, default="default")  # default | strong | double | none
    category_id = Column(String, nullable=True, index=True)

    created_at = Column(BigInteger, nullable=False)  # unix ms
    updated_at = Column(DateTime, default=datetime.utcnow)

    def to_raw(self) -> dict:
        """Stored-record shape, as fed to the record decoder."""
        try:
            schedule = json.loads(self.schedule_json)
        except (TypeError, ValueError):
            schedule = None

        raw = {
            "id": self.id,
            "title": self.title,
            "enabled": bool(self.enabled),
            "ringtone": self.ringtone,
            "vibration": self.vibration,
            "categoryId": self.category_id,
            "createdAt": self.created_at,
        }
        # legacy rows stored the intervalType fields in place of a schedule
        if isinstance(schedule, dict) and "kind" not in schedule:
            raw.update(schedule)
        else:
            raw["schedule"] = schedule
        return raw


class Completion(Base):
    __tablename__ = "completions"

    id = Column(String, primary_key=True, index=True)
    reminder_id = Column(String, nullable=False, index=True)

    completed_at = Column(BigInteger, nullable=False)  # unix ms
    source = Column(String, default="in_app")  # in_app | notification

    # local YYYY-MM-DD at write time; authoritative once set
    occurrence_date = Column(String(10), nullable=True)

    def to_record(self) -> CompletionRecord:
        return CompletionRecord(
            id=self.id,
            reminder_id=self.reminder_id,
            completed_at=self.completed_at,
            source=self.source or "in_app",
            occurrence_date=self.occurrence_date,
        )


class Category(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
