# ===== booking_engine/scripts/seed_demo_business.py =====
"""Create a demo business with Mon-Fri hours, one staff member and a weekly team meeting"""
from datetime import date, timedelta

from sqlalchemy.exc import SQLAlchemyError

from booking_engine.config.database import SessionLocal, create_tables
from booking_engine.models import AvailabilityOverride, BlockedPeriod, Business, BusinessHours, Staff


def seed_demo_business(db, today=None):
    today = today or date.today()

    business = Business(name="Demo Salon", timezone="UTC", webhook_urls={})
    db.add(business)
    db.flush()

    # 1. Mon-Fri 09:00-17:00 with a lunch break, weekends closed
    for day in range(7):
        is_open = day < 5
        db.add(BusinessHours(
            business_id=business.id,
            day_of_week=day,
            is_open=is_open,
            open_time="09:00" if is_open else None,
            close_time="17:00" if is_open else None,
            breaks=[{"start_time": "12:00", "end_time": "13:00"}] if is_open else [],
        ))

    staff = Staff(business_id=business.id, name="Alex")
    db.add(staff)

    # 2. Weekly team meeting every Monday morning
    next_monday = today + timedelta(days=(7 - today.weekday()) % 7)
    db.add(BlockedPeriod(
        business_id=business.id,
        date=next_monday,
        start_time="09:00",
        end_time="09:30",
        reason="Team meeting",
        recurrence_pattern="weekly",
    ))

    # 3. Closed two weeks from today
    db.add(AvailabilityOverride(
        business_id=business.id,
        date=today + timedelta(days=14),
        is_available=False,
        reason="Holiday",
    ))

    db.commit()
    return business


if __name__ == "__main__":
    create_tables()
    session = SessionLocal()
    try:
        demo = seed_demo_business(session)
        print(f"Seeded business {demo.id}")
    except SQLAlchemyError as e:
        session.rollback()
        print("Error seeding demo business:", e)
    finally:
        session.close()
