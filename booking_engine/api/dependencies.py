# ============================================================================
# FILE: booking_engine/api/dependencies.py
# Process-wide engine services shared by every request
# ============================================================================
from functools import lru_cache

from booking_engine.config.database import get_db  # noqa: F401
from booking_engine.services.availability.availability_query_service import AvailabilityQueryService
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.cache import AvailabilityCache
from booking_engine.services.availability.invalidation import CacheInvalidator
from booking_engine.services.booking.booking_service import BookingService
from booking_engine.services.booking.conflict_guard import ConflictGuard
from booking_engine.services.notification.notification_service import NotificationDispatcher
from booking_engine.services.schedule.schedule_service import ScheduleService


@lru_cache()
def get_availability_cache() -> AvailabilityCache:
    return AvailabilityCache()


@lru_cache()
def get_conflict_guard() -> ConflictGuard:
    return ConflictGuard(
        invalidator=CacheInvalidator(get_availability_cache()),
        notifier=NotificationDispatcher(),
    )


@lru_cache()
def get_availability_service() -> AvailabilityQueryService:
    return AvailabilityQueryService(AvailabilityService(cache=get_availability_cache()))


@lru_cache()
def get_booking_service() -> BookingService:
    return BookingService(get_conflict_guard())


@lru_cache()
def get_schedule_service() -> ScheduleService:
    return ScheduleService(get_conflict_guard())
