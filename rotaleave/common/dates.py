"""Date helpers: tolerant coercion, inclusive ranges, business-day counts."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterator, Optional

WEEKEND = frozenset({5, 6})   # Saturday, Sunday


def parse_date(value: Any) -> Optional[date]:
    """Coerce a stored date value to ``date``; ``None`` when it cannot be read.

    Accepts ``date``/``datetime`` objects, ISO strings (date or datetime)
    and epoch milliseconds as written by the legacy tabular store.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_business_day(day: date) -> bool:
    return day.weekday() not in WEEKEND


def count_business_days(start: date, end: date) -> int:
    """Mon–Fri days in ``[start, end]``; 0 when the range is empty."""
    if end < start:
        return 0
    return sum(1 for d in iter_dates(start, end) if is_business_day(d))


def business_days_after(current_end: date, new_end: date) -> int:
    """Mon–Fri days in ``(current_end, new_end]``: the days an extension adds."""
    return count_business_days(current_end + timedelta(days=1), new_end)


def word_count(text: Optional[str]) -> int:
    return len((text or "").split())
