# ============================================================================
# booking_engine/services/availability/availability_query_service.py
# Read facade - accepts wire formats (ISO dates, minutes) and delegates to the resolver
# ============================================================================
from datetime import date
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from booking_engine.config.settings import get_settings
from booking_engine.services.availability.availability_service import (
    AvailabilityService,
    AvailabilityStatistics,
    DayAvailability,
    NextAvailableSlot,
)
from booking_engine.services.availability.intervals import parse_date


class AvailabilityQueryService:
    """Read-only availability queries for a business"""

    def __init__(self, availability: AvailabilityService):
        self.availability = availability
        settings = get_settings()
        self.default_duration = settings.DEFAULT_SERVICE_DURATION_MINUTES
        self.default_horizon_days = settings.NEXT_AVAILABLE_HORIZON_DAYS

    def get_day_availability(
            self,
            db: Session,
            business_id: str,
            day: Union[str, date],
            duration: Optional[int] = None,
            staff_id: Optional[str] = None
    ) -> DayAvailability:
        return self.availability.resolve(
            db, business_id, parse_date(day), duration or self.default_duration, staff_id
        )

    def get_range_availability(
            self,
            db: Session,
            business_id: str,
            start_date: Union[str, date],
            end_date: Union[str, date],
            duration: Optional[int] = None,
            staff_id: Optional[str] = None
    ) -> List[DayAvailability]:
        return self.availability.resolve_range(
            db,
            business_id,
            parse_date(start_date),
            parse_date(end_date),
            duration or self.default_duration,
            staff_id,
        )

    def find_next_available_slot(
            self,
            db: Session,
            business_id: str,
            from_date: Union[str, date],
            duration: Optional[int] = None,
            staff_id: Optional[str] = None,
            horizon_days: Optional[int] = None
    ) -> Optional[NextAvailableSlot]:
        """
        Earliest available slot on or after `from_date`.
        Returns None when nothing is free inside the horizon.
        """
        start = parse_date(from_date)
        return self.availability.find_next_available(
            db,
            business_id,
            duration or self.default_duration,
            start,
            staff_id=staff_id,
            horizon_days=horizon_days or self.default_horizon_days,
        )

    def get_statistics(
            self,
            db: Session,
            business_id: str,
            start_date: Union[str, date],
            end_date: Union[str, date],
            duration: Optional[int] = None,
            staff_id: Optional[str] = None
    ) -> AvailabilityStatistics:
        return self.availability.statistics(
            db,
            business_id,
            parse_date(start_date),
            parse_date(end_date),
            duration or self.default_duration,
            staff_id,
        )
