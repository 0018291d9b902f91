# booking_engine/services/notification/notification_service.py
"""Fire-and-forget hand-off of appointment events to the Celery notification queue"""
import logging
from typing import Optional

from kombu.exceptions import OperationalError

from booking_engine.config.settings import get_settings

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Queues notifications after a booking write has committed"""

    BOOKING_CREATED = "booking.created"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_RESCHEDULED = "booking.rescheduled"
    BOOKING_STATUS_CHANGED = "booking.status_changed"
    BOOKING_STAFF_ASSIGNED = "booking.staff_assigned"

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = get_settings().NOTIFICATIONS_ENABLED if enabled is None else enabled

    def dispatch(self, event_type: str, appointment_id: str) -> bool:
        """Queue the event; never raises, since the booking itself already succeeded."""
        if not self.enabled:
            return False

        from booking_engine.tasks.notification_tasks import send_appointment_notification

        try:
            send_appointment_notification.delay(event_type, appointment_id)
        except OperationalError as e:
            logger.error(f"Could not queue {event_type} notification for appointment {appointment_id}: {e}")
            return False

        logger.debug(f"Queued {event_type} notification for appointment {appointment_id}")
        return True
