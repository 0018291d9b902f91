"""
Tests for the availability cache and cross-process invalidation signalling.
"""
from datetime import date, timedelta
from unittest.mock import MagicMock

import redis

from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.cache import AvailabilityCache
from booking_engine.services.availability.invalidation import CacheInvalidator, InvalidationListener

DAY = date(2030, 1, 7)


class TestAvailabilityCache:

    def test_put_and_get(self):
        cache = AvailabilityCache()
        key = cache.make_key("biz-1", DAY, 60, None)
        value = object()

        assert cache.get(key) is None
        assert cache.put(key, value, cache.generation("biz-1")) is value
        assert cache.get(key) is value
        assert len(cache) == 1

    def test_invalidation_is_per_business(self):
        cache = AvailabilityCache()
        one = cache.make_key("biz-1", DAY, 60)
        two = cache.make_key("biz-2", DAY, 60)
        cache.put(one, "a", 0)
        cache.put(two, "b", 0)

        assert cache.invalidate_business("biz-1") == 1
        assert cache.get(one) is None
        assert cache.get(two) == "b"

    def test_stale_result_is_not_stored(self):
        cache = AvailabilityCache()
        key = cache.make_key("biz-1", DAY, 60)

        generation = cache.generation("biz-1")
        cache.invalidate_business("biz-1")  # a write lands while the read is computing
        cache.put(key, "stale", generation)

        assert cache.get(key) is None

    def test_first_stored_value_wins(self):
        cache = AvailabilityCache()
        key = cache.make_key("biz-1", DAY, 60)
        first, second = object(), object()

        assert cache.put(key, first, 0) is first
        assert cache.put(key, second, 0) is first

    def test_clear(self):
        cache = AvailabilityCache()
        cache.put(cache.make_key("biz-1", DAY, 60), "a", 0)
        cache.clear()
        assert len(cache) == 0
        assert cache.generation("biz-1") == 1


class TestCacheBound:

    def test_evicts_least_recently_used(self):
        cache = AvailabilityCache(max_entries=2)
        first, second, third = (cache.make_key("biz-1", DAY, d) for d in (30, 60, 90))
        cache.put(first, "a", 0)
        cache.put(second, "b", 0)
        cache.get(first)

        cache.put(third, "c", 0)

        assert len(cache) == 2
        assert cache.get(second) is None
        assert cache.get(first) == "a"
        assert cache.get(third) == "c"

    def test_invalidation_after_eviction(self):
        cache = AvailabilityCache(max_entries=1)
        cache.put(cache.make_key("biz-1", DAY, 60), "a", 0)
        cache.put(cache.make_key("biz-2", DAY, 60), "b", 0)

        assert cache.invalidate_business("biz-1") == 0
        assert cache.invalidate_business("biz-2") == 1
        assert len(cache) == 0

    def test_default_bound_from_settings(self):
        assert AvailabilityCache().max_entries == 10000

    def test_resolve_keeps_cache_bounded(self, db, business_id):
        availability = AvailabilityService(cache=AvailabilityCache(max_entries=5))
        start = date(2030, 1, 1)
        for offset in range(40):
            availability.resolve(db, business_id, start + timedelta(days=offset), 60)

        assert len(availability.cache) == 5
        last = start + timedelta(days=39)
        assert availability.resolve(db, business_id, last, 60) is availability.resolve(db, business_id, last, 60)


class TestCacheInvalidator:

    def test_local_only_when_broadcast_disabled(self):
        cache = AvailabilityCache()
        cache.put(cache.make_key("biz-1", DAY, 60), "a", 0)
        client = MagicMock()

        CacheInvalidator(cache, redis_client=client, broadcast=False).invalidate("biz-1")

        assert len(cache) == 0
        client.publish.assert_not_called()

    def test_publishes_when_enabled(self):
        client = MagicMock()
        CacheInvalidator(AvailabilityCache(), redis_client=client, broadcast=True, channel="chan").invalidate("biz-1")
        client.publish.assert_called_once_with("chan", "business:biz-1")

    def test_redis_failure_keeps_local_invalidation(self):
        cache = AvailabilityCache()
        cache.put(cache.make_key("biz-1", DAY, 60), "a", 0)
        client = MagicMock()
        client.publish.side_effect = redis.ConnectionError("refused")

        CacheInvalidator(cache, redis_client=client, broadcast=True).invalidate("biz-1")

        assert len(cache) == 0


class TestInvalidationListener:

    def test_applies_remote_invalidation(self):
        cache = AvailabilityCache()
        cache.put(cache.make_key("biz-1", DAY, 60), "a", 0)
        listener = InvalidationListener(cache, redis_client=MagicMock(), channel="chan")

        assert listener.handle_message({"type": "message", "data": b"business:biz-1"}) == "biz-1"
        assert len(cache) == 0

    def test_ignores_other_messages(self):
        cache = AvailabilityCache()
        cache.put(cache.make_key("biz-1", DAY, 60), "a", 0)
        listener = InvalidationListener(cache, redis_client=MagicMock(), channel="chan")

        assert listener.handle_message(None) is None
        assert listener.handle_message({"type": "subscribe", "data": 1}) is None
        assert listener.handle_message({"type": "message", "data": b"garbage"}) is None
        assert len(cache) == 1

    def test_start_and_stop(self):
        client = MagicMock()
        pubsub = client.pubsub.return_value
        pubsub.get_message.return_value = None
        listener = InvalidationListener(AvailabilityCache(), redis_client=client, channel="chan")

        listener.start()
        listener.stop()

        pubsub.subscribe.assert_called_once_with("chan")
        pubsub.close.assert_called_once()
