"""
Queries against the authoritative store shared by the resolver (read path)
and the conflict guard (write path).
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import NotFound
from booking_engine.models import (
    Appointment,
    AppointmentStatus,
    AvailabilityOverride,
    BlockedPeriod,
    Business,
    BusinessHours,
    Staff,
    StaffAvailabilityOverride,
)
from booking_engine.services.availability.intervals import TimeRange
from booking_engine.services.availability.recurrence import occurs_on


@dataclass
class EffectiveHours:
    """Operating hours that apply to one concrete date"""
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    breaks: List[TimeRange] = field(default_factory=list)

    @property
    def window(self) -> TimeRange:
        return TimeRange.from_strings(self.open_time, self.close_time)


CLOSED = EffectiveHours(is_open=False)


def get_business(db: Session, business_id: str, for_update: bool = False) -> Business:
    query = db.query(Business).filter(Business.id == business_id)
    if for_update:
        query = query.with_for_update()
    business = query.first()
    if not business:
        raise NotFound("Business", business_id)
    return business


def get_staff(db: Session, business_id: str, staff_id: str) -> Staff:
    staff = db.query(Staff).filter(
        Staff.id == staff_id,
        Staff.business_id == business_id
    ).first()
    if not staff:
        raise NotFound("Staff", staff_id)
    return staff


def effective_hours(db: Session, business_id: str, day: date) -> EffectiveHours:
    """
    Weekday schedule for `day`, replaced by a business special-day override if one exists.
    Weekday breaks are kept when they still fit inside an overridden window.
    """
    entry = db.query(BusinessHours).filter(
        BusinessHours.business_id == business_id,
        BusinessHours.day_of_week == day.weekday()
    ).first()

    special = db.query(AvailabilityOverride).filter(
        AvailabilityOverride.business_id == business_id,
        AvailabilityOverride.date == day
    ).first()

    weekday_open = bool(entry and entry.is_open and entry.open_time and entry.close_time)
    breaks = _break_ranges(entry) if weekday_open else []

    if special is not None:
        if not special.is_available:
            return CLOSED
        open_time = special.start_time or (entry.open_time if weekday_open else None)
        close_time = special.end_time or (entry.close_time if weekday_open else None)
        if not open_time or not close_time:
            return CLOSED
        window = TimeRange.from_strings(open_time, close_time)
        return EffectiveHours(
            is_open=True,
            open_time=open_time,
            close_time=close_time,
            breaks=[brk for brk in breaks if window.contains(brk)],
        )

    if not weekday_open:
        return CLOSED

    return EffectiveHours(
        is_open=True,
        open_time=entry.open_time,
        close_time=entry.close_time,
        breaks=breaks,
    )


def _break_ranges(entry: BusinessHours) -> List[TimeRange]:
    return [
        TimeRange.from_strings(brk["start_time"], brk["end_time"])
        for brk in (entry.breaks or [])
    ]


def active_appointments(
        db: Session,
        business_id: str,
        start_date: date,
        end_date: Optional[date] = None,
        staff_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None
) -> List[Appointment]:
    """
    Non-cancelled appointments of a business between two dates (inclusive).
    Scoped to a staff member, that means their own appointments plus unassigned ones.
    """
    query = db.query(Appointment).filter(
        Appointment.business_id == business_id,
        Appointment.date >= start_date,
        Appointment.date <= (end_date or start_date),
        Appointment.status != AppointmentStatus.CANCELLED
    )

    if staff_id:
        query = query.filter(or_(
            Appointment.staff_id == staff_id,
            Appointment.staff_id.is_(None)
        ))
    if exclude_appointment_id:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return query.order_by(Appointment.date.asc(), Appointment.start_time.asc()).all()


def blocked_templates(
        db: Session,
        business_id: str,
        start_date: date,
        end_date: Optional[date] = None,
        staff_id: Optional[str] = None
) -> List[BlockedPeriod]:
    """
    Blocked-period rows that may occur between two dates: one-off periods inside the
    range and recurring templates anchored on or before its end.

    Business-wide blocks always apply; staff blocks only when scoped to that staff.
    """
    end_date = end_date or start_date

    query = db.query(BlockedPeriod).filter(
        BlockedPeriod.business_id == business_id,
        BlockedPeriod.date <= end_date,
        or_(
            BlockedPeriod.recurrence_pattern.isnot(None),
            BlockedPeriod.date >= start_date
        )
    )

    if staff_id:
        query = query.filter(or_(
            BlockedPeriod.staff_id.is_(None),
            BlockedPeriod.staff_id == staff_id
        ))
    else:
        query = query.filter(BlockedPeriod.staff_id.is_(None))

    return query.order_by(BlockedPeriod.start_time.asc()).all()


def blocked_on(
        db: Session,
        business_id: str,
        day: date,
        staff_id: Optional[str] = None
) -> List[BlockedPeriod]:
    """Blocked periods (one-off or recurring) that have an occurrence on `day`."""
    return [
        period for period in blocked_templates(db, business_id, day, day, staff_id)
        if occurs_on(period.date, period.recurrence_pattern, day)
    ]


def staff_override(db: Session, staff_id: str, day: date) -> Optional[StaffAvailabilityOverride]:
    return db.query(StaffAvailabilityOverride).filter(
        StaffAvailabilityOverride.staff_id == staff_id,
        StaffAvailabilityOverride.date == day
    ).first()
