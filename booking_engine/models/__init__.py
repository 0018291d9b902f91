# booking_engine/models/__init__.py
from .base import Base
from .business import Business, BusinessHours
from .staff import Staff
from .availability import AvailabilityOverride, StaffAvailabilityOverride
from .blocked_period import BlockedPeriod
from .appointment import Appointment, AppointmentStatus

__all__ = [
    "Base",
    "Business",
    "BusinessHours",
    "Staff",
    "AvailabilityOverride",
    "StaffAvailabilityOverride",
    "BlockedPeriod",
    "Appointment",
    "AppointmentStatus",
]
