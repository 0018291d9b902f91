# booking_engine/schemas/__init__.py
from .availability import (
    TimeWindow,
    AppointmentCreateRequest,
    BlockedPeriodCreateRequest,
    AppointmentCancelRequest,
    AppointmentRescheduleRequest,
    AppointmentStatusUpdateRequest,
    AppointmentAssignStaffRequest,
    BusinessHoursRequest,
    DayOverrideRequest,
    CommitResponse,
    BusinessHoursResponse,
)

__all__ = [
    "TimeWindow",
    "AppointmentCreateRequest",
    "BlockedPeriodCreateRequest",
    "AppointmentCancelRequest",
    "AppointmentRescheduleRequest",
    "AppointmentStatusUpdateRequest",
    "AppointmentAssignStaffRequest",
    "BusinessHoursRequest",
    "DayOverrideRequest",
    "CommitResponse",
    "BusinessHoursResponse",
]
