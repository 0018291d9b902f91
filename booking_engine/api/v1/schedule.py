# booking_engine/api/v1/schedule.py
"""Weekly hours, special days and staff overrides"""
from datetime import date

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_db, get_schedule_service
from booking_engine.schemas import BusinessHoursRequest, BusinessHoursResponse, DayOverrideRequest
from booking_engine.services.schedule.schedule_service import ScheduleService

router = APIRouter(tags=["schedule"])


@router.get("/{business_id}/hours")
def get_business_hours(
        business_id: str,
        db: Session = Depends(get_db),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    return {
        "business_id": business_id,
        "hours": schedule.get_business_hours(db, business_id),
    }


@router.put("/{business_id}/hours/{day_of_week}", response_model=BusinessHoursResponse)
def set_business_hours(
        business_id: str,
        request: BusinessHoursRequest,
        day_of_week: int = Path(..., ge=0, le=6, description="0=Monday, 6=Sunday"),
        db: Session = Depends(get_db),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    """
    Replace one weekday's hours.

    The response lists upcoming appointments that fall outside the new hours;
    they are left in place for the business to handle.
    """
    return schedule.set_business_hours(
        db,
        business_id,
        day_of_week,
        request.is_open,
        request.open_time,
        request.close_time,
        [brk.model_dump() for brk in request.breaks],
    )


@router.put("/{business_id}/special-days/{day}")
def set_special_day(
        business_id: str,
        day: date,
        request: DayOverrideRequest,
        db: Session = Depends(get_db),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    special = schedule.set_special_day(
        db, business_id, day, request.is_available, request.start_time, request.end_time, request.reason
    )
    return {
        "date": special.date.isoformat(),
        "is_available": special.is_available,
        "start_time": special.start_time,
        "end_time": special.end_time,
        "reason": special.reason,
    }


@router.delete("/{business_id}/special-days/{day}", status_code=status.HTTP_204_NO_CONTENT)
def remove_special_day(
        business_id: str,
        day: date,
        db: Session = Depends(get_db),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    schedule.remove_special_day(db, business_id, day)


@router.put("/{business_id}/staff/{staff_id}/overrides/{day}")
def set_staff_override(
        business_id: str,
        staff_id: str,
        day: date,
        request: DayOverrideRequest,
        db: Session = Depends(get_db),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    override = schedule.set_staff_override(
        db, business_id, staff_id, day, request.is_available,
        request.start_time, request.end_time, request.reason
    )
    return {
        "staff_id": override.staff_id,
        "date": override.date.isoformat(),
        "is_available": override.is_available,
        "start_time": override.start_time,
        "end_time": override.end_time,
        "reason": override.reason,
    }


@router.delete("/{business_id}/staff/{staff_id}/overrides/{day}", status_code=status.HTTP_204_NO_CONTENT)
def remove_staff_override(
        business_id: str,
        staff_id: str,
        day: date,
        db: Session = Depends(get_db),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    schedule.remove_staff_override(db, business_id, staff_id, day)
