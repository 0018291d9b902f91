# booking_engine/models/availability.py
from sqlalchemy import Column, String, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from booking_engine.models.base import Base
from booking_engine.models.business import generate_id


class AvailabilityOverride(Base):
    """Specific date overrides for the whole business (holidays, special hours)"""
    __tablename__ = "availability_overrides"
    __table_args__ = (
        UniqueConstraint("business_id", "date", name="uq_availability_override_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False)  # False = closed all day
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    reason = Column(String, nullable=True)  # "Holiday", "Inventory", etc.

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class StaffAvailabilityOverride(Base):
    """Per-date staff availability; no row means the staff follows business hours"""
    __tablename__ = "staff_availability_overrides"
    __table_args__ = (
        UniqueConstraint("staff_id", "date", name="uq_staff_override_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    staff_id = Column(String(36), ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False)  # False = day off
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    reason = Column(String, nullable=True)  # "Vacation", "Training", etc.

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
