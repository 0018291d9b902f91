# booking_engine/models/staff.py
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from booking_engine.models.base import Base
from booking_engine.models.business import generate_id


class Staff(Base):
    """Staff member who can be assigned appointments"""
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=generate_id)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Staff(id={self.id}, name={self.name})>"
