# booking_engine/models/blocked_period.py
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from booking_engine.models.base import Base
from booking_engine.models.business import generate_id


class BlockedPeriod(Base):
    """
    Owner-declared interval during which nothing may be booked.

    With a recurrence_pattern the row is a template anchored on `date`;
    its occurrences are expanded on demand and deleting the row removes them all.
    """
    __tablename__ = "blocked_periods"
    __table_args__ = (
        Index("idx_blocked_periods_business_date", "business_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    staff_id = Column(String(36), ForeignKey("staff.id", ondelete="CASCADE"), nullable=True, index=True)

    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    reason = Column(String, nullable=True)
    recurrence_pattern = Column(String(10), nullable=True)  # daily, weekly, monthly

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "business_id": self.business_id,
            "staff_id": self.staff_id,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "reason": self.reason,
            "recurrence_pattern": self.recurrence_pattern,
        }
