from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from nodeflow.config import settings
from nodeflow.core.dto import SwapRecord
from nodeflow.core.models import DateRange


KST = timezone(timedelta(hours=settings.KST_OFFSET_HOURS))

# "2024.01.05 13:20", "2024.01.05", "2024-01-05 13:20"
_TS_RE = re.compile(
    r"^\s*(\d{4})[.\-](\d{1,2})[.\-](\d{1,2})"
    r"(?:[ T]+(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?)?\s*$"
)

# below this an epoch value is taken to be in seconds
_EPOCH_MS_THRESHOLD = 100_000_000_000


def _from_epoch(raw: float) -> Optional[datetime]:
    if not math.isfinite(raw):
        return None
    seconds = raw if abs(raw) < _EPOCH_MS_THRESHOLD else raw / 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone(KST)
    except (OverflowError, OSError, ValueError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Source timestamp -> tz-aware instant, or None when it cannot be read.

    Strings use the fixed KST shape ``YYYY.MM.DD HH:MM`` (time optional);
    numbers are epoch ms (or seconds); numeric strings must be epoch ms;
    naive datetimes are taken as KST.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=KST)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=KST)

    if isinstance(value, (int, float, Decimal)):
        return _from_epoch(float(value))

    if isinstance(value, str):
        m = _TS_RE.match(value)
        if m is None:
            # bare digits only count as epoch milliseconds
            try:
                raw = float(value)
            except ValueError:
                return None
            if not math.isfinite(raw) or abs(raw) < _EPOCH_MS_THRESHOLD:
                return None
            return _from_epoch(raw)
        year, month, day, hour, minute = m.groups()
        try:
            return datetime(
                int(year), int(month), int(day),
                int(hour or 0), int(minute or 0),
                tzinfo=KST,
            )
        except ValueError:
            return None

    return None


def date_key(instant: datetime) -> str:
    return instant.astimezone(KST).strftime("%Y-%m-%d")


def parse_day(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    instant = parse_timestamp(value)
    if instant is None:
        return None
    return instant.astimezone(KST).date()


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time(0, 0), tzinfo=KST)


def filter_by_range(records: Iterable[SwapRecord], date_range: Optional[DateRange]) -> List[SwapRecord]:
    if date_range is None or date_range.is_empty:
        return list(records)

    start_day = parse_day(date_range.start)
    end_day = parse_day(date_range.end)
    start_at = _day_start(start_day) if start_day else None
    # end date is inclusive: stop before the following midnight
    end_before = _day_start(end_day + timedelta(days=1)) if end_day else None

    kept: List[SwapRecord] = []
    for r in records:
        if r.timestamp is None:
            continue
        if start_at is not None and r.timestamp < start_at:
            continue
        if end_before is not None and r.timestamp >= end_before:
            continue
        kept.append(r)
    return kept


def resolve_range(
    date_range: Optional[DateRange],
    records: Iterable[SwapRecord],
) -> Tuple[Optional[date], Optional[date]]:
    start = parse_day(date_range.start) if date_range else None
    end = parse_day(date_range.end) if date_range else None
    if start is not None and end is not None:
        return start, end

    days = [r.timestamp.astimezone(KST).date() for r in records if r.timestamp is not None]
    if days:
        start = start or min(days)
        end = end or max(days)
    return start, end
