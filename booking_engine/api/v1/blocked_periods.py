# booking_engine/api/v1/blocked_periods.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_booking_service, get_db
from booking_engine.api.v1.appointments import COMMIT_RESPONSES, commit_response
from booking_engine.schemas import BlockedPeriodCreateRequest, CommitResponse
from booking_engine.services.booking.booking_service import BookingService

router = APIRouter(tags=["blocked-periods"])


@router.post(
    "/{business_id}/blocked-periods",
    status_code=status.HTTP_201_CREATED,
    response_model=CommitResponse,
    responses=COMMIT_RESPONSES,
)
def block_period(
        business_id: str,
        request: BlockedPeriodCreateRequest,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    """Block a one-off or recurring interval; staff_id limits it to one staff member"""
    result = booking.block_period(
        db,
        business_id,
        request.date,
        request.start_time,
        request.end_time,
        staff_id=request.staff_id,
        reason=request.reason,
        recurrence_pattern=request.recurrence_pattern,
    )
    return commit_response(result)


@router.delete("/{business_id}/blocked-periods/{blocked_period_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_blocked_period(
        business_id: str,
        blocked_period_id: str,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    booking.remove_blocked_period(db, blocked_period_id, business_id)
