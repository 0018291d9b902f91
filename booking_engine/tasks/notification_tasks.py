# ===== booking_engine/tasks/notification_tasks.py =====
from datetime import datetime, timezone
import logging

import httpx

from booking_engine.config.celery_config import celery_app
from booking_engine.config.database import SessionLocal
from booking_engine.config.settings import get_settings
from booking_engine.models import Appointment, Business

logger = logging.getLogger(__name__)
settings = get_settings()


def build_payload(event_type: str, appointment: Appointment, business: Business) -> dict:
    return {
        "event": event_type,
        "business": {"id": business.id, "name": business.name, "timezone": business.timezone},
        "appointment": appointment.to_dict(),
        "sent_at": datetime.now(timezone.utc).isoformat(),
    }


@celery_app.task(bind=True, max_retries=settings.NOTIFICATION_MAX_RETRIES)
def send_appointment_notification(self, event_type: str, appointment_id: str):
    """Post an appointment event to the business's booking webhook"""
    db = SessionLocal()
    try:
        appointment = db.query(Appointment).filter_by(id=appointment_id).first()
        if not appointment:
            logger.error(f"Appointment {appointment_id} not found")
            return {"status": "failed", "reason": "appointment_not_found"}

        business = db.query(Business).filter_by(id=appointment.business_id).first()
        url = (business.webhook_urls or {}).get("booking") if business else None
        if not url:
            return {"status": "skipped", "reason": "no_booking_webhook"}

        payload = build_payload(event_type, appointment, business)
        response = httpx.post(url, json=payload, timeout=settings.NOTIFICATION_TIMEOUT_SECONDS)
        response.raise_for_status()

        logger.info(f"Delivered {event_type} for appointment {appointment_id}")
        return {"status": "delivered", "status_code": response.status_code}

    except httpx.HTTPError as exc:
        logger.error(f"Notification {event_type} failed for {appointment_id}: {exc}")
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    finally:
        db.close()
