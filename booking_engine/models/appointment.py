# booking_engine/models/appointment.py
from sqlalchemy import Column, String, Text, Date, DateTime, JSON, ForeignKey, Index
from sqlalchemy.sql import func
from booking_engine.models.base import Base
from booking_engine.models.business import generate_id


class AppointmentStatus:
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"

    ALL = (SCHEDULED, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_business_date", "business_id", "date"),
        Index("idx_appointments_staff_date", "staff_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)

    # References
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    staff_id = Column(String(36), ForeignKey("staff.id"), nullable=True)
    customer_id = Column(String(64), nullable=True)  # owned by the identity service

    # Appointment details
    service_type = Column(String, nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    notes = Column(Text, nullable=True)

    # scheduled, confirmed, in-progress, completed, cancelled, no-show
    status = Column(String(20), default=AppointmentStatus.SCHEDULED, nullable=False)

    reschedule_history = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "business_id": self.business_id,
            "staff_id": self.staff_id,
            "customer_id": self.customer_id,
            "service_type": self.service_type,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status,
            "notes": self.notes,
            "cancellation_reason": self.cancellation_reason,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "reschedule_history": list(self.reschedule_history or []),
        }
