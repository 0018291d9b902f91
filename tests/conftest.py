"""
Shared fixtures: a fresh SQLite database per test and a business open
Monday-Friday 09:00-17:00 with no breaks.
"""
import os
from datetime import date

# Must be set before booking_engine reads its settings
os.environ["DATABASE_URL"] = "sqlite:///./booking_engine_test.db"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["CACHE_BROADCAST_ENABLED"] = "false"

import pytest
from sqlalchemy.orm import sessionmaker

from booking_engine.config.database import build_engine
from booking_engine.models import Base, Business, BusinessHours, Staff
from booking_engine.services.availability.availability_query_service import AvailabilityQueryService
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.cache import AvailabilityCache
from booking_engine.services.availability.invalidation import CacheInvalidator
from booking_engine.services.booking.booking_service import BookingService
from booking_engine.services.booking.conflict_guard import ConflictGuard
from booking_engine.services.schedule.schedule_service import ScheduleService

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SATURDAY = date(2030, 1, 12)
SUNDAY = date(2030, 1, 13)
NEXT_MONDAY = date(2030, 1, 14)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def business_id(db):
    business = Business(name="Test Salon", timezone="UTC", webhook_urls={})
    db.add(business)
    db.flush()

    for day in range(7):
        is_open = day < 5
        db.add(BusinessHours(
            business_id=business.id,
            day_of_week=day,
            is_open=is_open,
            open_time="09:00" if is_open else None,
            close_time="17:00" if is_open else None,
            breaks=[],
        ))

    db.commit()
    return business.id


@pytest.fixture
def staff_id(db, business_id):
    staff = Staff(business_id=business_id, name="Alex")
    db.add(staff)
    db.commit()
    return staff.id


@pytest.fixture
def cache():
    return AvailabilityCache()


@pytest.fixture
def guard(cache):
    return ConflictGuard(invalidator=CacheInvalidator(cache, broadcast=False))


@pytest.fixture
def availability(cache):
    return AvailabilityService(cache=cache)


@pytest.fixture
def queries(availability):
    return AvailabilityQueryService(availability)


@pytest.fixture
def booking(guard):
    return BookingService(guard)


@pytest.fixture
def schedule(guard):
    return ScheduleService(guard)
