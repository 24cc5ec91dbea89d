"""Plain records passed into the core; ORM rows convert to these."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .schedules import ScheduleConfig

DEFAULT_RINGTONE = "default"
DEFAULT_VIBRATION = "default"

COMPLETION_SOURCES = ("in_app", "notification")


@dataclass(frozen=True)
class ReminderRecord:
    id: str
    title: str
    enabled: bool
    schedule: ScheduleConfig
    ringtone: str = DEFAULT_RINGTONE
    vibration: str = DEFAULT_VIBRATION
    category_id: Optional[str] = None
    created_at: int = 0  # unix ms


@dataclass(frozen=True)
class CompletionRecord:
    id: str
    reminder_id: str
    completed_at: int  # unix ms
    source: str = "in_app"
    # local YYYY-MM-DD cached at write time; derived on read when missing
    occurrence_date: Optional[str] = None


@dataclass(frozen=True)
class AlertConfig:
    ringtone: str = DEFAULT_RINGTONE
    vibration: str = DEFAULT_VIBRATION
