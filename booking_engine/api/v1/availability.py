# booking_engine/api/v1/availability.py
"""Read-only availability endpoints"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_availability_service, get_db
from booking_engine.services.availability.availability_query_service import AvailabilityQueryService

router = APIRouter(tags=["availability"])


@router.get("/{business_id}/availability")
def get_day_availability(
        business_id: str,
        day: date = Query(..., alias="date"),
        duration: Optional[int] = Query(None, gt=0, description="Service duration in minutes"),
        staff_id: Optional[str] = None,
        db: Session = Depends(get_db),
        service: AvailabilityQueryService = Depends(get_availability_service)
):
    """Slots and blocked intervals of one day"""
    availability = service.get_day_availability(db, business_id, day, duration, staff_id)
    return availability.to_dict()


@router.get("/{business_id}/availability/range")
def get_range_availability(
        business_id: str,
        start_date: date,
        end_date: date,
        duration: Optional[int] = Query(None, gt=0),
        staff_id: Optional[str] = None,
        db: Session = Depends(get_db),
        service: AvailabilityQueryService = Depends(get_availability_service)
):
    days = service.get_range_availability(db, business_id, start_date, end_date, duration, staff_id)
    return {
        "business_id": business_id,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "days": [day.to_dict() for day in days],
    }


@router.get("/{business_id}/availability/next")
def find_next_available_slot(
        business_id: str,
        from_date: Optional[date] = None,
        duration: Optional[int] = Query(None, gt=0),
        staff_id: Optional[str] = None,
        horizon_days: Optional[int] = Query(None, gt=0),
        db: Session = Depends(get_db),
        service: AvailabilityQueryService = Depends(get_availability_service)
):
    """
    Earliest free slot on or after `from_date`, which defaults to today.
    `slot` is null when nothing is free inside the horizon.
    """
    slot = service.find_next_available_slot(
        db, business_id, from_date or date.today(), duration, staff_id, horizon_days
    )
    return {
        "business_id": business_id,
        "slot": slot.to_dict() if slot else None,
    }


@router.get("/{business_id}/availability/statistics")
def get_statistics(
        business_id: str,
        start_date: date,
        end_date: date,
        duration: Optional[int] = Query(None, gt=0),
        staff_id: Optional[str] = None,
        db: Session = Depends(get_db),
        service: AvailabilityQueryService = Depends(get_availability_service)
):
    stats = service.get_statistics(db, business_id, start_date, end_date, duration, staff_id)
    return stats.to_dict()
