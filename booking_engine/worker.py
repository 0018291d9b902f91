"""
Celery worker entry point
Delivers appointment notifications
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from booking_engine.config.celery_config import celery_app
from booking_engine.utils.my_logging import setup_logging

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Handle worker startup"""
    logger.info("Celery worker ready")
    logger.info(f"Registered tasks: {[name for name in celery_app.tasks.keys() if not name.startswith('celery.')]}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    """Handle worker shutdown"""
    logger.info("Celery worker shutting down")


if __name__ == "__main__":
    celery_app.start([
        'worker',
        '--loglevel=info',
        '--queues=notifications',
        '--concurrency=2',
        '--max-tasks-per-child=1000'
    ])
