# booking_engine/api/v1/appointments.py
"""Appointment booking and lifecycle endpoints"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_booking_service, get_db
from booking_engine.schemas import (
    AppointmentAssignStaffRequest,
    AppointmentCancelRequest,
    AppointmentCreateRequest,
    AppointmentRescheduleRequest,
    AppointmentStatusUpdateRequest,
    CommitResponse,
)
from booking_engine.services.booking.booking_service import BookingService
from booking_engine.services.booking.conflict_guard import CommitResult

router = APIRouter(tags=["appointments"])

# Documents both outcomes of a guarded write; the body itself comes from commit_response
COMMIT_RESPONSES = {status.HTTP_409_CONFLICT: {"model": CommitResponse, "description": "Overlapping commitments"}}


def commit_response(result: CommitResult, created_status: int = status.HTTP_201_CREATED) -> JSONResponse:
    """201 (or `created_status`) with the record id, 409 with the conflicting intervals"""
    if result.is_conflict:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.to_dict())
    return JSONResponse(status_code=created_status, content=result.to_dict())


@router.post(
    "/{business_id}/appointments",
    status_code=status.HTTP_201_CREATED,
    response_model=CommitResponse,
    responses=COMMIT_RESPONSES,
)
def book_appointment(
        business_id: str,
        request: AppointmentCreateRequest,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    result = booking.book_appointment(
        db,
        business_id,
        request.date,
        request.start_time,
        request.end_time,
        staff_id=request.staff_id,
        customer_id=request.customer_id,
        service_type=request.service_type,
        notes=request.notes,
        status=request.status,
    )
    return commit_response(result)


@router.get("/{business_id}/appointments/{appointment_id}")
def get_appointment(
        business_id: str,
        appointment_id: str,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    return booking.get_appointment(db, appointment_id, business_id).to_dict()


@router.post("/{business_id}/appointments/{appointment_id}/cancel")
def cancel_appointment(
        business_id: str,
        appointment_id: str,
        request: AppointmentCancelRequest,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    booking.get_appointment(db, appointment_id, business_id)
    appointment = booking.cancel_appointment(db, appointment_id, request.reason)
    return appointment.to_dict()


@router.post(
    "/{business_id}/appointments/{appointment_id}/reschedule",
    response_model=CommitResponse,
    responses=COMMIT_RESPONSES,
)
def reschedule_appointment(
        business_id: str,
        appointment_id: str,
        request: AppointmentRescheduleRequest,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    booking.get_appointment(db, appointment_id, business_id)
    result = booking.reschedule_appointment(
        db,
        appointment_id,
        request.date,
        request.start_time,
        request.end_time,
        reason=request.reason,
        rescheduled_by=request.rescheduled_by,
    )
    return commit_response(result, created_status=status.HTTP_200_OK)


@router.patch("/{business_id}/appointments/{appointment_id}/status")
def update_appointment_status(
        business_id: str,
        appointment_id: str,
        request: AppointmentStatusUpdateRequest,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    booking.get_appointment(db, appointment_id, business_id)
    appointment = booking.update_appointment_status(db, appointment_id, request.status)
    return appointment.to_dict()


@router.post(
    "/{business_id}/appointments/{appointment_id}/assign",
    response_model=CommitResponse,
    responses=COMMIT_RESPONSES,
)
def assign_staff(
        business_id: str,
        appointment_id: str,
        request: AppointmentAssignStaffRequest,
        db: Session = Depends(get_db),
        booking: BookingService = Depends(get_booking_service)
):
    """Give the appointment to a staff member; 409 when they are already committed"""
    booking.get_appointment(db, appointment_id, business_id)
    result = booking.assign_staff(db, appointment_id, request.staff_id)
    return commit_response(result, created_status=status.HTTP_200_OK)
