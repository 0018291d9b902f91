"""
Recurrence expansion for blocked-period templates.

A recurring blocked period is stored once and anchored on its original date.
Occurrences are computed on demand and never precede the anchor.
"""
from datetime import date, timedelta
from typing import List, Optional

from booking_engine.core.exceptions import InvalidInterval

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"

RECURRENCE_PATTERNS = (DAILY, WEEKLY, MONTHLY)


def validate_pattern(pattern: Optional[str]) -> Optional[str]:
    if pattern is None:
        return None
    if pattern not in RECURRENCE_PATTERNS:
        raise InvalidInterval(
            f"Unknown recurrence pattern '{pattern}', expected one of {', '.join(RECURRENCE_PATTERNS)}"
        )
    return pattern


def occurs_on(anchor: date, pattern: Optional[str], day: date) -> bool:
    """Whether a template anchored on `anchor` has an occurrence on `day`."""
    if day < anchor:
        return False
    if pattern is None:
        return day == anchor
    if pattern == DAILY:
        return True
    if pattern == WEEKLY:
        return day.weekday() == anchor.weekday()
    if pattern == MONTHLY:
        # Months without the anchor's day (e.g. the 31st) simply have no occurrence
        return day.day == anchor.day
    raise InvalidInterval(f"Unknown recurrence pattern '{pattern}'")


def expand(template, range_start: date, range_end: date) -> List[date]:
    """
    Concrete dates of `template` within [range_start, range_end], inclusive.

    `template` is anything with `date` and `recurrence_pattern` attributes,
    normally a BlockedPeriod row.
    """
    if range_end < range_start:
        return []

    anchor = template.date
    pattern = template.recurrence_pattern
    start = max(range_start, anchor)

    if pattern is None:
        return [anchor] if range_start <= anchor <= range_end else []

    if pattern == WEEKLY:
        # Jump straight to the first matching weekday, then step by weeks
        offset = (anchor.weekday() - start.weekday()) % 7
        current = start + timedelta(days=offset)
        step = timedelta(days=7)
    else:
        current = start
        step = timedelta(days=1)

    dates = []
    while current <= range_end:
        if occurs_on(anchor, pattern, current):
            dates.append(current)
        current += step
    return dates
