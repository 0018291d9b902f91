"""
Pydantic schemas for availability, booking and schedule requests
"""
from datetime import datetime, date
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_engine.models.appointment import AppointmentStatus
from booking_engine.services.availability.intervals import END_OF_DAY
from booking_engine.services.availability.recurrence import RECURRENCE_PATTERNS


def _check_hhmm(v: Optional[str]) -> Optional[str]:
    if v is None or v == END_OF_DAY:
        return v
    try:
        datetime.strptime(v, "%H:%M")
    except ValueError:
        raise ValueError("Time must be in HH:MM format")
    if len(v) != 5:
        raise ValueError("Time must be in HH:MM format")
    return v


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class TimeWindow(BaseModel):
    """A start/end pair of HH:MM times"""
    start_time: str = Field(..., description="Start time (HH:MM)")
    end_time: str = Field(..., description="End time (HH:MM)")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _check_hhmm(v)


class AppointmentCreateRequest(TimeWindow):
    date: date
    staff_id: Optional[str] = None
    customer_id: Optional[str] = Field(None, max_length=64)
    service_type: Optional[str] = None
    notes: Optional[str] = None
    status: str = AppointmentStatus.SCHEDULED

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED):
            raise ValueError("New appointments must be 'scheduled' or 'confirmed'")
        return v


class BlockedPeriodCreateRequest(TimeWindow):
    date: date
    staff_id: Optional[str] = None
    reason: Optional[str] = None
    recurrence_pattern: Optional[str] = Field(None, description="daily, weekly or monthly")

    @field_validator("recurrence_pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in RECURRENCE_PATTERNS:
            raise ValueError(f"recurrence_pattern must be one of {', '.join(RECURRENCE_PATTERNS)}")
        return v


class AppointmentCancelRequest(BaseModel):
    reason: Optional[str] = None


class AppointmentRescheduleRequest(TimeWindow):
    date: date
    reason: Optional[str] = None
    rescheduled_by: Optional[str] = None


class AppointmentStatusUpdateRequest(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in AppointmentStatus.ALL:
            raise ValueError(f"status must be one of {', '.join(AppointmentStatus.ALL)}")
        return v


class AppointmentAssignStaffRequest(BaseModel):
    staff_id: str = Field(..., min_length=1)


class BusinessHoursRequest(BaseModel):
    """Operating hours for one weekday"""
    is_open: bool = True
    open_time: Optional[str] = Field(None, description="Opening time (HH:MM)")
    close_time: Optional[str] = Field(None, description="Closing time (HH:MM)")
    breaks: List[TimeWindow] = Field(default_factory=list)

    @field_validator("open_time", "close_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_hhmm(v)

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.is_open:
            if not self.open_time or not self.close_time:
                raise ValueError("open_time and close_time are required when is_open is true")
            if self.close_time <= self.open_time:
                raise ValueError("close_time must be after open_time")
        return self


class DayOverrideRequest(BaseModel):
    """Special day for the business or a staff member"""
    is_available: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_hhmm(v)


# ============================================================================
# Response Schemas (for outgoing data)
# ============================================================================

class CommitResponse(BaseModel):
    status: str  # ok or conflict
    record_id: Optional[str] = None
    conflicts: List[Dict[str, Any]] = Field(default_factory=list)


class BusinessHoursResponse(BaseModel):
    hours: Dict[str, Any]
    affected_appointments: List[Dict[str, Any]]
