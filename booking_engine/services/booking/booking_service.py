# ============================================================================
# booking_engine/services/booking/booking_service.py
# Write facade - every mutation goes through the conflict guard
# ============================================================================
"""Service for booking, blocking, cancelling and rescheduling"""
import logging
from datetime import date, datetime, timezone
from typing import Optional, Union

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import InvalidTransition, NotFound
from booking_engine.models import Appointment, AppointmentStatus, BlockedPeriod
from booking_engine.services.availability.intervals import TimeRange, parse_date
from booking_engine.services.availability import store_queries
from booking_engine.services.booking.conflict_guard import (
    CommitKind,
    CommitResult,
    ConflictGuard,
    check_not_in_past,
)
from booking_engine.services.notification.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

# Only `cancelled` frees the interval; every other state keeps blocking it
ALLOWED_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.IN_PROGRESS: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}

INITIAL_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)
RESCHEDULABLE_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)
ASSIGNABLE_STATUSES = RESCHEDULABLE_STATUSES + (AppointmentStatus.IN_PROGRESS,)


def check_transition(current: str, requested: str):
    if requested not in ALLOWED_TRANSITIONS:
        raise InvalidTransition(current, requested)
    if requested not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransition(current, requested)


class BookingService:
    """Handles appointment and blocked-period writes"""

    def __init__(self, guard: ConflictGuard):
        self.guard = guard

    @property
    def notifier(self) -> Optional[NotificationDispatcher]:
        return self.guard.notifier

    def book_appointment(
            self,
            db: Session,
            business_id: str,
            day: Union[str, date],
            start_time: str,
            end_time: str,
            staff_id: Optional[str] = None,
            customer_id: Optional[str] = None,
            service_type: Optional[str] = None,
            notes: Optional[str] = None,
            status: str = AppointmentStatus.SCHEDULED,
            today: Optional[date] = None
    ) -> CommitResult:
        if status not in INITIAL_STATUSES:
            raise InvalidTransition("new", status)

        return self.guard.try_commit(
            db,
            CommitKind.APPOINTMENT,
            business_id,
            parse_date(day),
            start_time,
            end_time,
            staff_id=staff_id,
            customer_id=customer_id,
            service_type=service_type,
            notes=notes,
            status=status,
            today=today,
        )

    def block_period(
            self,
            db: Session,
            business_id: str,
            day: Union[str, date],
            start_time: str,
            end_time: str,
            staff_id: Optional[str] = None,
            reason: Optional[str] = None,
            recurrence_pattern: Optional[str] = None
    ) -> CommitResult:
        return self.guard.try_commit(
            db,
            CommitKind.BLOCKED_PERIOD,
            business_id,
            parse_date(day),
            start_time,
            end_time,
            staff_id=staff_id,
            reason=reason,
            recurrence_pattern=recurrence_pattern,
        )

    def remove_blocked_period(self, db: Session, blocked_period_id: str,
                              business_id: Optional[str] = None) -> None:
        """Delete a blocked period; for a recurring template this removes every occurrence."""
        query = db.query(BlockedPeriod).filter(BlockedPeriod.id == blocked_period_id)
        if business_id:
            query = query.filter(BlockedPeriod.business_id == business_id)
        period = query.first()
        if not period:
            raise NotFound("BlockedPeriod", blocked_period_id)

        with self.guard.critical_section(db, period.business_id) as scope:
            db.delete(period)
            scope.changed = True

        logger.info(f"Removed blocked period {blocked_period_id}")

    def get_appointment(self, db: Session, appointment_id: str,
                        business_id: Optional[str] = None) -> Appointment:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if business_id:
            query = query.filter(Appointment.business_id == business_id)
        appointment = query.first()
        if not appointment:
            raise NotFound("Appointment", appointment_id)
        return appointment

    def _reload(self, db: Session, appointment_id: str) -> Appointment:
        """Re-read the row inside the critical section, discarding stale identity-map state."""
        appointment = db.query(Appointment).populate_existing().filter(
            Appointment.id == appointment_id
        ).first()
        if not appointment:
            raise NotFound("Appointment", appointment_id)
        return appointment

    def cancel_appointment(self, db: Session, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        appointment = self.get_appointment(db, appointment_id)

        with self.guard.critical_section(db, appointment.business_id) as scope:
            appointment = self._reload(db, appointment_id)
            check_transition(appointment.status, AppointmentStatus.CANCELLED)

            appointment.status = AppointmentStatus.CANCELLED
            appointment.cancellation_reason = reason
            appointment.cancelled_at = datetime.now(timezone.utc)
            scope.changed = True

        logger.info(f"Cancelled appointment {appointment_id}")
        if self.notifier:
            self.notifier.dispatch(NotificationDispatcher.BOOKING_CANCELLED, appointment_id)
        return appointment

    def update_appointment_status(self, db: Session, appointment_id: str, status: str) -> Appointment:
        if status == AppointmentStatus.CANCELLED:
            return self.cancel_appointment(db, appointment_id)

        appointment = self.get_appointment(db, appointment_id)

        with self.guard.critical_section(db, appointment.business_id) as scope:
            appointment = self._reload(db, appointment_id)
            check_transition(appointment.status, status)
            previous = appointment.status
            appointment.status = status
            # Statuses other than cancelled don't change availability; keep the cache
            scope.changed = False

        logger.info(f"Appointment {appointment_id} moved from {previous} to {status}")
        if self.notifier:
            self.notifier.dispatch(NotificationDispatcher.BOOKING_STATUS_CHANGED, appointment_id)
        return appointment

    def reschedule_appointment(
            self,
            db: Session,
            appointment_id: str,
            new_day: Union[str, date],
            start_time: str,
            end_time: str,
            reason: Optional[str] = None,
            rescheduled_by: Optional[str] = None,
            today: Optional[date] = None
    ) -> CommitResult:
        """
        Move an appointment, checking the new interval against every other commitment.
        The appointment's own current interval is ignored; the new date can't be before `today`.
        """
        new_day = parse_date(new_day)
        proposed = TimeRange.from_strings(start_time, end_time)
        check_not_in_past(new_day, today)
        appointment = self.get_appointment(db, appointment_id)

        with self.guard.critical_section(db, appointment.business_id) as scope:
            appointment = self._reload(db, appointment_id)
            if appointment.status not in RESCHEDULABLE_STATUSES:
                raise InvalidTransition(appointment.status, "rescheduled")

            conflicts = self.guard.appointment_preconditions(
                db, appointment.business_id, new_day, proposed, appointment.staff_id
            )
            conflicts.extend(self.guard.find_conflicts(
                db,
                appointment.business_id,
                [new_day],
                proposed,
                staff_id=appointment.staff_id,
                exclude_appointment_id=appointment.id,
            ))
            if conflicts:
                db.rollback()
                logger.info(f"Reschedule of {appointment_id} to {new_day} {proposed} rejected")
                return CommitResult.conflict(conflicts)

            history = list(appointment.reschedule_history or [])
            history.append({
                "original_date": appointment.date.isoformat(),
                "original_start_time": appointment.start_time,
                "original_end_time": appointment.end_time,
                "new_date": new_day.isoformat(),
                "new_start_time": proposed.start_time,
                "new_end_time": proposed.end_time,
                "reason": reason,
                "rescheduled_by": rescheduled_by,
                "rescheduled_at": datetime.now(timezone.utc).isoformat(),
            })

            appointment.date = new_day
            appointment.start_time = proposed.start_time
            appointment.end_time = proposed.end_time
            appointment.reschedule_history = history
            scope.changed = True

        logger.info(f"Rescheduled appointment {appointment_id} to {new_day} {proposed}")
        if self.notifier:
            self.notifier.dispatch(NotificationDispatcher.BOOKING_RESCHEDULED, appointment_id)
        return CommitResult.success(appointment_id)

    def assign_staff(self, db: Session, appointment_id: str, staff_id: str) -> CommitResult:
        """
        Hand an appointment to a staff member, keeping its date and time.

        The staff member's other appointments and blocks, the business's breaks and
        any staff override for the date are checked; a conflict leaves the
        appointment untouched.
        """
        appointment = self.get_appointment(db, appointment_id)

        with self.guard.critical_section(db, appointment.business_id) as scope:
            appointment = self._reload(db, appointment_id)
            if appointment.status not in ASSIGNABLE_STATUSES:
                raise InvalidTransition(appointment.status, "assigned")
            store_queries.get_staff(db, appointment.business_id, staff_id)

            if appointment.staff_id == staff_id:
                return CommitResult.success(appointment_id)

            proposed = TimeRange.from_strings(appointment.start_time, appointment.end_time)
            conflicts = self.guard.appointment_preconditions(
                db, appointment.business_id, appointment.date, proposed, staff_id
            )
            conflicts.extend(self.guard.find_conflicts(
                db,
                appointment.business_id,
                [appointment.date],
                proposed,
                staff_id=staff_id,
                exclude_appointment_id=appointment.id,
            ))
            if conflicts:
                db.rollback()
                logger.info(f"Assignment of appointment {appointment_id} to staff {staff_id} rejected")
                return CommitResult.conflict(conflicts)

            appointment.staff_id = staff_id
            scope.changed = True

        logger.info(f"Assigned appointment {appointment_id} to staff {staff_id}")
        if self.notifier:
            self.notifier.dispatch(NotificationDispatcher.BOOKING_STAFF_ASSIGNED, appointment_id)
        return CommitResult.success(appointment_id)
