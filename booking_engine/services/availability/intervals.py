"""
Interval model shared by every availability and booking computation.

All intervals are half-open [start, end) minute offsets from local midnight,
so back-to-back intervals (a.end == b.start) never overlap.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

from booking_engine.core.exceptions import InvalidInterval

MINUTES_PER_DAY = 24 * 60
END_OF_DAY = "24:00"


def to_minutes(value: str) -> int:
    """
    Convert an "HH:MM" 24-hour string to minutes after midnight.

    "24:00" is accepted as the end of the day (1440).
    """
    if value == END_OF_DAY:
        return MINUTES_PER_DAY
    try:
        parsed = datetime.strptime(value, "%H:%M")
    except (TypeError, ValueError):
        raise InvalidInterval(f"Time must be in HH:MM format, got {value!r}")
    if len(value) != 5:
        raise InvalidInterval(f"Time must be in HH:MM format, got {value!r}")
    return parsed.hour * 60 + parsed.minute


def format_minutes(minutes: int) -> str:
    """Convert minutes after midnight back to "HH:MM"."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise InvalidInterval(f"{minutes} minutes is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: Union[str, date]) -> date:
    """Accept an ISO calendar date string or a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidInterval(f"Date must be in YYYY-MM-DD format, got {value!r}")


@dataclass(frozen=True)
class TimeRange:
    """
    Immutable half-open time range within one day.

    Invariant: 0 <= start < end <= 1440.
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end > MINUTES_PER_DAY:
            raise InvalidInterval(f"Range {self.start}-{self.end} is outside a single day")
        if self.start >= self.end:
            raise InvalidInterval(
                f"Start time {format_minutes(self.start)} must be before end time {format_minutes(self.end)}"
            )

    @classmethod
    def from_strings(cls, start_time: str, end_time: str) -> "TimeRange":
        return cls(to_minutes(start_time), to_minutes(end_time))

    @property
    def start_time(self) -> str:
        return format_minutes(self.start)

    @property
    def end_time(self) -> str:
        return format_minutes(self.end)

    def duration_minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        return overlaps(self, other)

    def contains(self, other: "TimeRange") -> bool:
        """True if `other` lies entirely within this range."""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """Half-open overlap test: a.start < b.end and b.start < a.end."""
    return a.start < b.end and b.start < a.end
