# booking_engine/models/business.py
"""
Business and weekly operating schedule.
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from booking_engine.models.base import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class Business(Base):
    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(200), nullable=False)

    # All times of this business are local wall-clock times in this zone
    timezone = Column(String(50), default="UTC")

    # {"booking": "https://..."} - where appointment notifications are posted
    webhook_urls = Column(JSON, default=dict)

    hours = relationship(
        "BusinessHours",
        back_populates="business",
        cascade="all, delete-orphan",
        order_by="BusinessHours.day_of_week",
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"


class BusinessHours(Base):
    """Operating schedule entry for one weekday"""
    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_day"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    is_open = Column(Boolean, default=True, nullable=False)
    open_time = Column(String(5), nullable=True)  # HH:MM format
    close_time = Column(String(5), nullable=True)  # HH:MM format
    breaks = Column(JSON, default=list)  # [{"start_time": "12:00", "end_time": "13:00"}]

    business = relationship("Business", back_populates="hours")

    def to_dict(self):
        return {
            "day_of_week": self.day_of_week,
            "is_open": self.is_open,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "breaks": list(self.breaks or []),
        }

    def __repr__(self):
        return f"<BusinessHours(business_id={self.business_id}, day={self.day_of_week})>"
