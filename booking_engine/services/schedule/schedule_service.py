# booking_engine/services/schedule/schedule_service.py
"""Service for weekly hours, special days and staff overrides"""
import logging
from datetime import date
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import InvalidInterval, NotFound
from booking_engine.models import (
    Appointment,
    AppointmentStatus,
    AvailabilityOverride,
    BusinessHours,
    StaffAvailabilityOverride,
)
from booking_engine.services.availability import store_queries
from booking_engine.services.availability.intervals import TimeRange, overlaps, parse_date
from booking_engine.services.booking.conflict_guard import ConflictGuard

logger = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def validate_hours(
        is_open: bool,
        open_time: Optional[str],
        close_time: Optional[str],
        breaks: Optional[List[Dict[str, str]]]
) -> Optional[tuple]:
    """
    Check one weekday entry and return (window, sorted break ranges),
    or None for a closed day.
    """
    if not is_open:
        return None
    if not open_time or not close_time:
        raise InvalidInterval("Open days need both open_time and close_time")

    window = TimeRange.from_strings(open_time, close_time)

    ranges = []
    for brk in breaks or []:
        try:
            ranges.append(TimeRange.from_strings(brk["start_time"], brk["end_time"]))
        except (KeyError, TypeError):
            raise InvalidInterval(f"Break must have start_time and end_time: {brk!r}")
    ranges.sort(key=lambda r: r.start)

    for brk in ranges:
        if not window.contains(brk):
            raise InvalidInterval(f"Break {brk} is outside operating hours {window}")
    for previous, current in zip(ranges, ranges[1:]):
        if overlaps(previous, current):
            raise InvalidInterval(f"Breaks {previous} and {current} overlap")

    return window, ranges


def _optional_window(start_time: Optional[str], end_time: Optional[str]) -> Optional[TimeRange]:
    if start_time is None and end_time is None:
        return None
    if not start_time or not end_time:
        raise InvalidInterval("Give both start_time and end_time, or neither")
    return TimeRange.from_strings(start_time, end_time)


class ScheduleService:
    """
    Mutations of the inputs availability is derived from. All writes run in the
    guard's critical section so cached availability of the business is dropped.
    """

    def __init__(self, guard: ConflictGuard):
        self.guard = guard

    def get_business_hours(self, db: Session, business_id: str) -> List[dict]:
        store_queries.get_business(db, business_id)
        hours = db.query(BusinessHours).filter(
            BusinessHours.business_id == business_id
        ).order_by(BusinessHours.day_of_week).all()

        result = []
        for entry in hours:
            data = entry.to_dict()
            data["day_name"] = DAY_NAMES[entry.day_of_week]
            result.append(data)
        return result

    def set_business_hours(
            self,
            db: Session,
            business_id: str,
            day_of_week: int,
            is_open: bool,
            open_time: Optional[str] = None,
            close_time: Optional[str] = None,
            breaks: Optional[List[Dict[str, str]]] = None,
            today: Optional[date] = None
    ) -> dict:
        """
        Replace one weekday's schedule.

        Returns the saved entry and the upcoming appointments (from tomorrow on,
        relative to `today`) that no longer fit the new hours. Those appointments
        are reported, not modified.
        """
        if day_of_week not in range(7):
            raise InvalidInterval(f"day_of_week must be 0-6, got {day_of_week}")

        validated = validate_hours(is_open, open_time, close_time, breaks)
        if validated is None:
            open_time = close_time = None
            break_data = []
        else:
            window, ranges = validated
            open_time, close_time = window.start_time, window.end_time
            break_data = [{"start_time": r.start_time, "end_time": r.end_time} for r in ranges]

        with self.guard.critical_section(db, business_id) as scope:
            entry = db.query(BusinessHours).filter(
                BusinessHours.business_id == business_id,
                BusinessHours.day_of_week == day_of_week
            ).first()
            if not entry:
                entry = BusinessHours(business_id=business_id, day_of_week=day_of_week)
                db.add(entry)

            entry.is_open = is_open
            entry.open_time = open_time
            entry.close_time = close_time
            entry.breaks = break_data
            scope.changed = True

            affected = self._affected_appointments(
                db, business_id, day_of_week, validated, today or date.today()
            )
            saved = entry.to_dict()

        if affected:
            logger.warning(
                f"{len(affected)} upcoming appointment(s) of business {business_id} fall outside "
                f"the new {DAY_NAMES[day_of_week]} hours"
            )
        logger.info(f"Updated {DAY_NAMES[day_of_week]} hours for business {business_id}")

        return {"hours": saved, "affected_appointments": affected}

    @staticmethod
    def _affected_appointments(
            db: Session,
            business_id: str,
            day_of_week: int,
            validated: Optional[tuple],
            today: date
    ) -> List[dict]:
        upcoming = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.date > today,
            Appointment.status.notin_([AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED])
        ).order_by(Appointment.date.asc(), Appointment.start_time.asc()).all()

        affected = []
        for appointment in upcoming:
            if appointment.date.weekday() != day_of_week:
                continue
            # A special day replaces the weekday schedule on that date
            special = db.query(AvailabilityOverride).filter(
                AvailabilityOverride.business_id == business_id,
                AvailabilityOverride.date == appointment.date
            ).first()
            if special is not None:
                continue

            booked = TimeRange.from_strings(appointment.start_time, appointment.end_time)
            if validated is not None:
                window, ranges = validated
                if window.contains(booked) and not any(overlaps(booked, brk) for brk in ranges):
                    continue

            affected.append({
                "appointment_id": appointment.id,
                "date": appointment.date.isoformat(),
                "start_time": appointment.start_time,
                "end_time": appointment.end_time,
                "service_type": appointment.service_type,
                "staff_id": appointment.staff_id,
            })
        return affected

    def set_special_day(
            self,
            db: Session,
            business_id: str,
            day: Union[str, date],
            is_available: bool,
            start_time: Optional[str] = None,
            end_time: Optional[str] = None,
            reason: Optional[str] = None
    ) -> AvailabilityOverride:
        """Close the business on `day`, or give it alternative hours for that date."""
        day = parse_date(day)
        window = _optional_window(start_time, end_time) if is_available else None

        with self.guard.critical_section(db, business_id) as scope:
            special = db.query(AvailabilityOverride).filter(
                AvailabilityOverride.business_id == business_id,
                AvailabilityOverride.date == day
            ).first()
            if not special:
                special = AvailabilityOverride(business_id=business_id, date=day)
                db.add(special)

            special.is_available = is_available
            special.start_time = window.start_time if window else None
            special.end_time = window.end_time if window else None
            special.reason = reason
            scope.changed = True

        logger.info(f"Set special day {day} for business {business_id} (open={is_available})")
        return special

    def remove_special_day(self, db: Session, business_id: str, day: Union[str, date]) -> None:
        day = parse_date(day)

        with self.guard.critical_section(db, business_id) as scope:
            special = db.query(AvailabilityOverride).filter(
                AvailabilityOverride.business_id == business_id,
                AvailabilityOverride.date == day
            ).first()
            if not special:
                raise NotFound("AvailabilityOverride", day.isoformat())
            db.delete(special)
            scope.changed = True

        logger.info(f"Removed special day {day} for business {business_id}")

    def set_staff_override(
            self,
            db: Session,
            business_id: str,
            staff_id: str,
            day: Union[str, date],
            is_available: bool,
            start_time: Optional[str] = None,
            end_time: Optional[str] = None,
            reason: Optional[str] = None
    ) -> StaffAvailabilityOverride:
        """Mark a staff member off for `day`, or restrict them to a window on that date."""
        day = parse_date(day)
        window = _optional_window(start_time, end_time) if is_available else None

        with self.guard.critical_section(db, business_id) as scope:
            store_queries.get_staff(db, business_id, staff_id)
            override = store_queries.staff_override(db, staff_id, day)
            if not override:
                override = StaffAvailabilityOverride(staff_id=staff_id, business_id=business_id, date=day)
                db.add(override)

            override.is_available = is_available
            override.start_time = window.start_time if window else None
            override.end_time = window.end_time if window else None
            override.reason = reason
            scope.changed = True

        logger.info(f"Set override for staff {staff_id} on {day} (available={is_available})")
        return override

    def remove_staff_override(self, db: Session, business_id: str, staff_id: str,
                              day: Union[str, date]) -> None:
        day = parse_date(day)

        with self.guard.critical_section(db, business_id) as scope:
            store_queries.get_staff(db, business_id, staff_id)
            override = store_queries.staff_override(db, staff_id, day)
            if not override:
                raise NotFound("StaffAvailabilityOverride", f"{staff_id}/{day.isoformat()}")
            db.delete(override)
            scope.changed = True

        logger.info(f"Removed override for staff {staff_id} on {day}")
