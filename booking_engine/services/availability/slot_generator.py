"""
Candidate slot grid for a single day.
"""
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from booking_engine.core.exceptions import InvalidInterval
from booking_engine.services.availability.intervals import TimeRange, format_minutes, overlaps

DEFAULT_STEP_MINUTES = 30


@dataclass
class TimeSlot:
    """A fixed-duration candidate interval; `available` is narrowed by the resolver."""
    start_time: str
    end_time: str
    available: bool = True
    staff_id: Optional[str] = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_strings(self.start_time, self.end_time)

    def to_dict(self):
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "available": self.available,
            "staff_id": self.staff_id,
        }


def generate(
        day: date,
        open_time: str,
        close_time: str,
        breaks: Iterable[TimeRange],
        duration: int,
        step_minutes: int = DEFAULT_STEP_MINUTES
) -> List[TimeSlot]:
    """
    Emit [t, t+duration) for t = open + k*step while t+duration <= close,
    skipping candidates that overlap a break.

    A trailing window shorter than `duration` produces no slot.
    """
    if duration <= 0:
        raise InvalidInterval(f"Service duration must be positive, got {duration}")
    if step_minutes <= 0:
        raise InvalidInterval(f"Slot step must be positive, got {step_minutes}")

    window = TimeRange.from_strings(open_time, close_time)
    break_ranges = list(breaks)

    slots: List[TimeSlot] = []
    start = window.start
    while start + duration <= window.end:
        candidate = TimeRange(start, start + duration)
        if not any(overlaps(candidate, brk) for brk in break_ranges):
            slots.append(TimeSlot(
                start_time=format_minutes(candidate.start),
                end_time=format_minutes(candidate.end),
            ))
        start += step_minutes

    return slots
