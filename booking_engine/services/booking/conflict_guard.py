"""
Conflict Guard

Write-time gate for appointments and blocked periods. Every check-then-insert runs
inside one store transaction while holding the business's critical section, and
re-reads commitments from the store (never from the availability cache).

Serialization:
    1. an in-process lock picked from a fixed pool by business id
    2. SELECT ... FOR UPDATE on the business row, which serializes writers in
       other processes on databases that support row locks
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import (
    BookingEngineError,
    BusinessClosed,
    InvalidInterval,
    StoreUnavailable,
)
from booking_engine.models import Appointment, AppointmentStatus, BlockedPeriod
from booking_engine.services.availability import store_queries
from booking_engine.services.availability.intervals import TimeRange, overlaps
from booking_engine.services.availability.invalidation import CacheInvalidator
from booking_engine.services.availability.recurrence import expand, occurs_on, validate_pattern
from booking_engine.services.notification.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


class CommitKind:
    APPOINTMENT = "appointment"
    BLOCKED_PERIOD = "blocked_period"

    ALL = (APPOINTMENT, BLOCKED_PERIOD)


@dataclass(frozen=True)
class ConflictDetail:
    """One existing commitment that overlaps the proposed interval"""
    kind: str  # appointment, blocked_period, break, staff_unavailable
    record_id: Optional[str]
    date: date
    start_time: str
    end_time: str

    def to_dict(self):
        return {
            "kind": self.kind,
            "record_id": self.record_id,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


@dataclass
class CommitResult:
    """Outcome of a guarded write: either the new record id or the conflicts found"""
    ok: bool
    record_id: Optional[str] = None
    conflicts: List[ConflictDetail] = field(default_factory=list)

    @classmethod
    def success(cls, record_id: str) -> "CommitResult":
        return cls(ok=True, record_id=record_id)

    @classmethod
    def conflict(cls, conflicts: List[ConflictDetail]) -> "CommitResult":
        return cls(ok=False, conflicts=list(conflicts))

    @property
    def is_conflict(self) -> bool:
        return not self.ok

    def to_dict(self):
        return {
            "status": "ok" if self.ok else "conflict",
            "record_id": self.record_id,
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
        }


def check_not_in_past(day: date, today: Optional[date] = None):
    """Appointments can't be placed on a date before `today` (the current date by default)."""
    today = today or date.today()
    if day < today:
        raise InvalidInterval(f"Cannot book appointments in the past: {day} is before {today}")


class BusinessLockRegistry:
    """
    Fixed pool of locks; a business id always maps to the same one.

    Two businesses may share a lock, which only serializes them further.
    """

    def __init__(self, size: int = 64):
        if size <= 0:
            raise ValueError(f"Lock pool size must be positive, got {size}")
        self._locks = [threading.Lock() for _ in range(size)]

    def __len__(self):
        return len(self._locks)

    def lock_for(self, business_id: str) -> threading.Lock:
        return self._locks[hash(business_id) % len(self._locks)]

    @contextmanager
    def hold(self, business_id: str):
        with self.lock_for(business_id):
            yield


class WriteScope:
    """Handed to code running inside a critical section"""

    def __init__(self, business):
        self.business = business
        self.changed = False


class ConflictGuard:
    """Serializes writes per business and rejects overlapping commitments"""

    def __init__(
            self,
            invalidator: CacheInvalidator,
            notifier: Optional[NotificationDispatcher] = None,
            locks: Optional[BusinessLockRegistry] = None
    ):
        self.invalidator = invalidator
        self.notifier = notifier
        self.locks = locks or BusinessLockRegistry()
        self.recurring_horizon_days = get_settings().RECURRING_BLOCK_CONFLICT_HORIZON_DAYS

    @contextmanager
    def critical_section(self, db: Session, business_id: str):
        """
        Run a check-then-write unit for one business.

        Commits on normal exit, rolls back on any error. Set `scope.changed` when
        something was written so the business's cached availability is dropped.
        """
        with self.locks.hold(business_id):
            try:
                business = store_queries.get_business(db, business_id, for_update=True)
                scope = WriteScope(business)
                yield scope
                db.commit()
            except BookingEngineError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error(f"Store transaction failed for business {business_id}: {exc}")
                raise StoreUnavailable(f"Could not complete write for business {business_id}") from exc

            if scope.changed:
                self.invalidator.invalidate(business_id)

    def try_commit(
            self,
            db: Session,
            kind: str,
            business_id: str,
            day: date,
            start_time: str,
            end_time: str,
            staff_id: Optional[str] = None,
            today: Optional[date] = None,
            **fields
    ) -> CommitResult:
        """
        Insert an appointment or blocked period unless it overlaps an existing
        non-cancelled appointment or blocked-period occurrence.

        Returns CommitResult.success(id) or CommitResult.conflict([...]); a conflict
        writes nothing. Appointments dated before `today` are rejected.
        """
        if kind not in CommitKind.ALL:
            raise ValueError(f"Unknown commit kind: {kind}")

        # Validated before any store access
        proposed = TimeRange.from_strings(start_time, end_time)
        pattern = validate_pattern(fields.get("recurrence_pattern"))
        if kind == CommitKind.APPOINTMENT:
            if pattern:
                raise InvalidInterval("Appointments cannot recur")
            check_not_in_past(day, today)

        with self.critical_section(db, business_id) as scope:
            if staff_id:
                store_queries.get_staff(db, business_id, staff_id)

            if kind == CommitKind.APPOINTMENT:
                conflicts = self.appointment_preconditions(db, business_id, day, proposed, staff_id)
                dates = [day]
                record = Appointment(
                    business_id=business_id,
                    staff_id=staff_id,
                    date=day,
                    start_time=proposed.start_time,
                    end_time=proposed.end_time,
                    customer_id=fields.get("customer_id"),
                    service_type=fields.get("service_type"),
                    notes=fields.get("notes"),
                    status=fields.get("status") or AppointmentStatus.SCHEDULED,
                    reschedule_history=[],
                )
            else:
                conflicts = []
                record = BlockedPeriod(
                    business_id=business_id,
                    staff_id=staff_id,
                    date=day,
                    start_time=proposed.start_time,
                    end_time=proposed.end_time,
                    reason=fields.get("reason"),
                    recurrence_pattern=pattern,
                )
                dates = self._occurrence_dates(record)

            conflicts.extend(self.find_conflicts(db, business_id, dates, proposed, staff_id))

            if conflicts:
                db.rollback()
                logger.info(
                    f"Rejected {kind} for business {business_id} on {day} {proposed}: "
                    f"{len(conflicts)} conflict(s)"
                )
                return CommitResult.conflict(conflicts)

            db.add(record)
            db.flush()
            record_id = record.id
            scope.changed = True

        logger.info(f"Committed {kind} {record_id} for business {business_id} on {day} {proposed}")

        if kind == CommitKind.APPOINTMENT and self.notifier:
            self.notifier.dispatch(NotificationDispatcher.BOOKING_CREATED, record_id)

        return CommitResult.success(record_id)

    def _occurrence_dates(self, template: BlockedPeriod) -> List[date]:
        if template.recurrence_pattern is None:
            return [template.date]
        horizon_end = template.date + timedelta(days=self.recurring_horizon_days)
        return expand(template, template.date, horizon_end)

    def appointment_preconditions(
            self,
            db: Session,
            business_id: str,
            day: date,
            proposed: TimeRange,
            staff_id: Optional[str]
    ) -> List[ConflictDetail]:
        """Operating hours must cover the interval clear of breaks; a staff override may rule it out."""
        hours = store_queries.effective_hours(db, business_id, day)
        if not hours.is_open:
            raise BusinessClosed(business_id, day)
        if not hours.window.contains(proposed):
            raise InvalidInterval(
                f"{proposed} is outside operating hours {hours.open_time}-{hours.close_time} on {day}"
            )

        breaks = [ConflictDetail(
            kind="break",
            record_id=None,
            date=day,
            start_time=brk.start_time,
            end_time=brk.end_time,
        ) for brk in hours.breaks if overlaps(brk, proposed)]
        if breaks or not staff_id:
            return breaks

        override = store_queries.staff_override(db, staff_id, day)
        if override is None:
            return []

        unavailable = not override.is_available
        if not unavailable and override.start_time and override.end_time:
            window = TimeRange.from_strings(override.start_time, override.end_time)
            unavailable = not window.contains(proposed)

        if not unavailable:
            return []

        return [ConflictDetail(
            kind="staff_unavailable",
            record_id=override.id,
            date=day,
            start_time=override.start_time or hours.open_time,
            end_time=override.end_time or hours.close_time,
        )]

    def find_conflicts(
            self,
            db: Session,
            business_id: str,
            dates: Iterable[date],
            proposed: TimeRange,
            staff_id: Optional[str] = None,
            exclude_appointment_id: Optional[str] = None
    ) -> List[ConflictDetail]:
        """Existing commitments overlapping `proposed` on any of `dates`, read from the store."""
        dates = sorted(set(dates))
        if not dates:
            return []
        wanted = set(dates)
        conflicts: List[ConflictDetail] = []

        appointments = store_queries.active_appointments(
            db, business_id, dates[0], dates[-1],
            staff_id=staff_id,
            exclude_appointment_id=exclude_appointment_id,
        )
        for appointment in appointments:
            if appointment.date not in wanted:
                continue
            if overlaps(proposed, TimeRange.from_strings(appointment.start_time, appointment.end_time)):
                conflicts.append(ConflictDetail(
                    kind=CommitKind.APPOINTMENT,
                    record_id=appointment.id,
                    date=appointment.date,
                    start_time=appointment.start_time,
                    end_time=appointment.end_time,
                ))

        for period in store_queries.blocked_templates(db, business_id, dates[0], dates[-1], staff_id):
            blocked = TimeRange.from_strings(period.start_time, period.end_time)
            if not overlaps(proposed, blocked):
                continue
            for day in dates:
                if occurs_on(period.date, period.recurrence_pattern, day):
                    conflicts.append(ConflictDetail(
                        kind=CommitKind.BLOCKED_PERIOD,
                        record_id=period.id,
                        date=day,
                        start_time=period.start_time,
                        end_time=period.end_time,
                    ))

        return conflicts
