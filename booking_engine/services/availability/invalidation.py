"""
Cache invalidation signalling.

Writes always drop the local process's cache entries. When CACHE_BROADCAST_ENABLED
is set, the business id is also published on a Redis channel so every other API
process drops its entries too.
"""
import logging
import threading
from typing import Optional

import redis

from booking_engine.config.redis import RedisKeys, get_redis
from booking_engine.config.settings import get_settings
from booking_engine.services.availability.cache import AvailabilityCache

logger = logging.getLogger(__name__)

MESSAGE_PREFIX = RedisKeys.BUSINESS_INVALIDATION_MESSAGE.split("{")[0]


class CacheInvalidator:
    """Invalidates locally and optionally broadcasts to other processes"""

    def __init__(
            self,
            cache: AvailabilityCache,
            redis_client: Optional[redis.Redis] = None,
            broadcast: Optional[bool] = None,
            channel: Optional[str] = None
    ):
        settings = get_settings()
        self.cache = cache
        self.broadcast = settings.CACHE_BROADCAST_ENABLED if broadcast is None else broadcast
        self.channel = channel or settings.CACHE_INVALIDATION_CHANNEL
        self._redis = redis_client

    def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def invalidate(self, business_id: str):
        self.cache.invalidate_business(business_id)

        if not self.broadcast:
            return

        message = RedisKeys.BUSINESS_INVALIDATION_MESSAGE.format(business_id=business_id)
        try:
            self._client().publish(self.channel, message)
        except redis.RedisError as e:
            # Local cache is already clean; other processes converge on their next write
            logger.error(f"Failed to broadcast cache invalidation for business {business_id}: {e}")


class InvalidationListener:
    """Background subscriber that applies invalidations published by other processes"""

    def __init__(self, cache: AvailabilityCache, redis_client: Optional[redis.Redis] = None,
                 channel: Optional[str] = None):
        self.cache = cache
        self.channel = channel or get_settings().CACHE_INVALIDATION_CHANNEL
        self._redis = redis_client
        self._pubsub = None
        self._thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()

    def handle_message(self, message) -> Optional[str]:
        """Apply one pub/sub message; returns the invalidated business id, if any."""
        if not message or message.get("type") != "message":
            return None

        data = message.get("data")
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        if not isinstance(data, str) or not data.startswith(MESSAGE_PREFIX):
            logger.warning(f"Ignoring unexpected invalidation message: {data!r}")
            return None

        business_id = data[len(MESSAGE_PREFIX):]
        self.cache.invalidate_business(business_id)
        return business_id

    def start(self):
        client = self._redis or get_redis()
        self._pubsub = client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(self.channel)
        self._thread = threading.Thread(target=self._run, name="availability-invalidation", daemon=True)
        self._thread.start()
        logger.info(f"Listening for availability invalidations on '{self.channel}'")

    def _run(self):
        while not self._stopped.is_set():
            try:
                message = self._pubsub.get_message(timeout=1.0)
            except redis.RedisError as e:
                logger.error(f"Invalidation listener lost Redis connection: {e}")
                # Entries may have missed remote writes while disconnected
                self.cache.clear()
                self._stopped.wait(1.0)
                continue
            self.handle_message(message)

    def stop(self):
        self._stopped.set()
        if self._thread:
            self._thread.join(timeout=5)
        if self._pubsub is not None:
            self._pubsub.close()
