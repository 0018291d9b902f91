"""
Availability resolver: merges business hours, breaks, blocked periods, existing
appointments and staff overrides into one DayAvailability per date, and owns the
read-side cache.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import InvalidInterval, StoreUnavailable
from booking_engine.services.availability import slot_generator
from booking_engine.services.availability import store_queries
from booking_engine.services.availability.cache import AvailabilityCache
from booking_engine.services.availability.intervals import TimeRange, overlaps
from booking_engine.services.availability.slot_generator import TimeSlot

logger = logging.getLogger(__name__)


@dataclass
class BlockedInterval:
    start_time: str
    end_time: str
    reason: Optional[str] = None
    blocked_period_id: Optional[str] = None

    def to_dict(self):
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "reason": self.reason,
            "blocked_period_id": self.blocked_period_id,
        }


@dataclass
class DayAvailability:
    date: date
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    slots: List[TimeSlot] = field(default_factory=list)
    blocked_slots: List[BlockedInterval] = field(default_factory=list)

    def available_slots(self) -> List[TimeSlot]:
        return [slot for slot in self.slots if slot.available]

    def to_dict(self):
        return {
            "date": self.date.isoformat(),
            "is_open": self.is_open,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "slots": [slot.to_dict() for slot in self.slots],
            "blocked_slots": [blocked.to_dict() for blocked in self.blocked_slots],
        }


@dataclass(frozen=True)
class NextAvailableSlot:
    date: date
    start_time: str
    end_time: str
    staff_id: Optional[str] = None

    def to_dict(self):
        return {
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "staff_id": self.staff_id,
        }


@dataclass(frozen=True)
class AvailabilityStatistics:
    total_slots: int
    available_slots: int
    booked_slots: int
    blocked_count: int
    utilization_rate: float

    def to_dict(self):
        return {
            "total_slots": self.total_slots,
            "available_slots": self.available_slots,
            "booked_slots": self.booked_slots,
            "blocked_count": self.blocked_count,
            "utilization_rate": self.utilization_rate,
        }


def iter_days(start_date: date, end_date: date, max_days: int) -> Iterator[date]:
    """Inclusive day iterator that refuses ranges longer than `max_days`."""
    if end_date < start_date:
        raise InvalidInterval(f"End date {end_date} is before start date {start_date}")
    span = (end_date - start_date).days + 1
    if span > max_days:
        raise InvalidInterval(f"Date range of {span} days exceeds the limit of {max_days}")
    for offset in range(span):
        yield start_date + timedelta(days=offset)


class AvailabilityService:
    """Computes and caches per-day availability for a business"""

    def __init__(self, cache: Optional[AvailabilityCache] = None, step_minutes: Optional[int] = None):
        settings = get_settings()
        self.cache = cache if cache is not None else AvailabilityCache()
        self.step_minutes = step_minutes or settings.SLOT_STEP_MINUTES
        self.max_range_days = settings.MAX_RANGE_DAYS
        self.max_horizon_days = settings.MAX_HORIZON_DAYS

    def resolve(
            self,
            db: Session,
            business_id: str,
            day: date,
            duration: int,
            staff_id: Optional[str] = None
    ) -> DayAvailability:
        """
        Availability of one business (optionally one staff member) on one date.

        Repeated calls with the same key return the same object until the
        business's cache entries are invalidated by a write.
        """
        if duration <= 0:
            raise InvalidInterval(f"Service duration must be positive, got {duration}")

        key = self.cache.make_key(business_id, day, duration, staff_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation(business_id)
        try:
            result = self._compute(db, business_id, day, duration, staff_id)
        except SQLAlchemyError as exc:
            logger.error(f"Availability lookup failed for business {business_id} on {day}: {exc}")
            raise StoreUnavailable(f"Could not read availability for business {business_id}") from exc

        return self.cache.put(key, result, generation)

    def _compute(
            self,
            db: Session,
            business_id: str,
            day: date,
            duration: int,
            staff_id: Optional[str]
    ) -> DayAvailability:
        store_queries.get_business(db, business_id)
        if staff_id:
            store_queries.get_staff(db, business_id, staff_id)

        # 1. Operating hours (weekday entry or special-day override)
        hours = store_queries.effective_hours(db, business_id, day)
        if not hours.is_open:
            return DayAvailability(date=day, is_open=False)

        # 2. Candidate grid
        slots = slot_generator.generate(
            day, hours.open_time, hours.close_time, hours.breaks, duration, self.step_minutes
        )
        slot_ranges = [slot.time_range for slot in slots]

        # 3. Blocked periods, one-off and recurring
        blocked_slots = []
        for period in store_queries.blocked_on(db, business_id, day, staff_id):
            blocked = TimeRange.from_strings(period.start_time, period.end_time)
            blocked_slots.append(BlockedInterval(
                start_time=period.start_time,
                end_time=period.end_time,
                reason=period.reason,
                blocked_period_id=period.id,
            ))
            self._mark_overlapping(slots, slot_ranges, blocked)

        # 4. Existing non-cancelled appointments
        for appointment in store_queries.active_appointments(db, business_id, day, staff_id=staff_id):
            booked = TimeRange.from_strings(appointment.start_time, appointment.end_time)
            self._mark_overlapping(slots, slot_ranges, booked)

        # 5. Staff override narrows further
        if staff_id:
            self._apply_staff_override(db, staff_id, day, slots, slot_ranges)
            for slot in slots:
                slot.staff_id = staff_id

        return DayAvailability(
            date=day,
            is_open=True,
            open_time=hours.open_time,
            close_time=hours.close_time,
            slots=slots,
            blocked_slots=blocked_slots,
        )

    @staticmethod
    def _mark_overlapping(slots: List[TimeSlot], slot_ranges: List[TimeRange], busy: TimeRange):
        for slot, slot_range in zip(slots, slot_ranges):
            if overlaps(slot_range, busy):
                slot.available = False

    @staticmethod
    def _apply_staff_override(
            db: Session,
            staff_id: str,
            day: date,
            slots: List[TimeSlot],
            slot_ranges: List[TimeRange]
    ):
        override = store_queries.staff_override(db, staff_id, day)
        if override is None:
            return

        if not override.is_available:
            for slot in slots:
                slot.available = False
            return

        if override.start_time and override.end_time:
            window = TimeRange.from_strings(override.start_time, override.end_time)
            for slot, slot_range in zip(slots, slot_ranges):
                if not window.contains(slot_range):
                    slot.available = False

    def resolve_range(
            self,
            db: Session,
            business_id: str,
            start_date: date,
            end_date: date,
            duration: int,
            staff_id: Optional[str] = None
    ) -> List[DayAvailability]:
        return [
            self.resolve(db, business_id, day, duration, staff_id)
            for day in iter_days(start_date, end_date, self.max_range_days)
        ]

    def find_next_available(
            self,
            db: Session,
            business_id: str,
            duration: int,
            from_date: date,
            staff_id: Optional[str] = None,
            horizon_days: int = 30
    ) -> Optional[NextAvailableSlot]:
        """First available slot on or after `from_date` within `horizon_days` days."""
        if horizon_days <= 0 or horizon_days > self.max_horizon_days:
            raise InvalidInterval(
                f"Search horizon must be between 1 and {self.max_horizon_days} days, got {horizon_days}"
            )

        for offset in range(horizon_days):
            day = from_date + timedelta(days=offset)
            availability = self.resolve(db, business_id, day, duration, staff_id)
            if not availability.is_open:
                continue
            for slot in availability.slots:
                if slot.available:
                    return NextAvailableSlot(
                        date=day,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        staff_id=slot.staff_id,
                    )

        logger.info(
            f"No available slot for business {business_id} within {horizon_days} days of {from_date}"
        )
        return None

    def statistics(
            self,
            db: Session,
            business_id: str,
            start_date: date,
            end_date: date,
            duration: int,
            staff_id: Optional[str] = None
    ) -> AvailabilityStatistics:
        total = available = blocked = 0

        for availability in self.resolve_range(db, business_id, start_date, end_date, duration, staff_id):
            if not availability.is_open:
                continue
            total += len(availability.slots)
            available += sum(1 for slot in availability.slots if slot.available)
            blocked += len(availability.blocked_slots)

        booked = total - available
        return AvailabilityStatistics(
            total_slots=total,
            available_slots=available,
            booked_slots=booked,
            blocked_count=blocked,
            utilization_rate=booked / total if total else 0.0,
        )

    def invalidate(self, business_id: str) -> int:
        return self.cache.invalidate_business(business_id)
