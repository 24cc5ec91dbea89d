"""
Local-time helpers.

Completion timestamps are stored as unix milliseconds (UTC). Everything that
buckets by calendar day converts them into the observer's zone at call time,
so these helpers always take the zone and "now" explicitly where it matters.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import tzlocal

from ..config import settings

logger = logging.getLogger(__name__)


def local_tz() -> tzinfo:
    """Return the configured zone, or the host's IANA zone (TZ wins over /etc/localtime).

    Never a fixed offset: day keys and wall-clock triggers follow DST.
    """

    if settings.local_timezone:
        return ZoneInfo(settings.local_timezone)
    try:
        return tzlocal.get_localzone()
    except (ValueError, ZoneInfoNotFoundError) as exc:
        logger.warning("could not resolve host timezone, using UTC: %s", exc)
        return timezone.utc


def now_ms() -> int:
    return int(time.time() * 1000)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_local(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert an aware datetime into `tz`. Naive values are taken as already local."""

    tz = tz or local_tz()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def ms_to_local_date(ms: int, tz: Optional[tzinfo] = None) -> date:
    tz = tz or local_tz()
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).astimezone(tz).date()


def local_date_key(ms: int, tz: Optional[tzinfo] = None) -> str:
    """YYYY-MM-DD of `ms` in the observer's zone."""

    return ms_to_local_date(ms, tz).isoformat()


def local_midnight_ms(day: date, tz: Optional[tzinfo] = None) -> int:
    tz = tz or local_tz()
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    return int(start.timestamp() * 1000)
