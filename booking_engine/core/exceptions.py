# booking_engine/core/exceptions.py
"""Errors raised by the availability and booking engine"""


class BookingEngineError(Exception):
    """Base class for every engine error"""


class InvalidInterval(BookingEngineError, ValueError):
    """Malformed time or date, start >= end, or an interval outside the allowed bounds"""


class BusinessClosed(BookingEngineError):
    """The business has no operating hours on the requested day"""

    def __init__(self, business_id: str, day):
        self.business_id = business_id
        self.day = day
        super().__init__(f"Business {business_id} is closed on {day.isoformat()}")


class NotFound(BookingEngineError):
    """A referenced business, staff member, appointment or blocked period is missing"""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class StoreUnavailable(BookingEngineError):
    """The persistent store failed; the transaction was rolled back and may be retried"""


class InvalidTransition(BookingEngineError):
    """An appointment status change that the lifecycle does not allow"""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move appointment from '{current}' to '{requested}'")
