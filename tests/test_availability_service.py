"""
Tests for the availability resolver and its cache.
"""
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from booking_engine.core.exceptions import InvalidInterval, NotFound, StoreUnavailable
from booking_engine.models import BusinessHours

from conftest import MONDAY, NEXT_MONDAY, SATURDAY, SUNDAY, TUESDAY


def _free(day_availability):
    return [slot.start_time for slot in day_availability.available_slots()]


class TestResolve:

    def test_open_day_grid(self, db, business_id, availability):
        day = availability.resolve(db, business_id, MONDAY, 60)

        assert day.is_open
        assert (day.open_time, day.close_time) == ("09:00", "17:00")
        assert _free(day)[0] == "09:00"
        assert _free(day)[-1] == "16:00"

    def test_closed_day(self, db, business_id, availability):
        day = availability.resolve(db, business_id, SATURDAY, 60)
        assert not day.is_open
        assert day.slots == []

    def test_unknown_business(self, db, availability):
        with pytest.raises(NotFound):
            availability.resolve(db, "missing", MONDAY, 60)

    def test_rejects_non_positive_duration(self, db, business_id, availability):
        with pytest.raises(InvalidInterval):
            availability.resolve(db, business_id, MONDAY, 0)

    def test_breaks_are_excluded(self, db, business_id, availability):
        hours = db.query(BusinessHours).filter_by(business_id=business_id, day_of_week=0).one()
        hours.breaks = [{"start_time": "12:00", "end_time": "13:00"}]
        db.commit()

        starts = [slot.start_time for slot in availability.resolve(db, business_id, MONDAY, 60).slots]
        assert "11:30" not in starts
        assert "12:00" not in starts
        assert "13:00" in starts


class TestCache:

    def test_repeated_reads_return_same_object(self, db, business_id, availability):
        first = availability.resolve(db, business_id, MONDAY, 60)
        second = availability.resolve(db, business_id, MONDAY, 60)
        assert first is second

    def test_key_includes_duration_and_staff(self, db, business_id, staff_id, availability):
        hour = availability.resolve(db, business_id, MONDAY, 60)
        half_hour = availability.resolve(db, business_id, MONDAY, 30)
        scoped = availability.resolve(db, business_id, MONDAY, 60, staff_id)
        assert hour is not half_hour
        assert hour is not scoped

    def test_write_invalidates(self, db, business_id, availability, booking):
        before = availability.resolve(db, business_id, MONDAY, 60)
        assert "10:00" in _free(before)

        booking.book_appointment(db, business_id, MONDAY, "10:00", "11:00")

        after = availability.resolve(db, business_id, MONDAY, 60)
        assert after is not before
        assert "10:00" not in _free(after)
        assert "09:30" not in _free(after)
        assert "09:00" in _free(after)
        assert "11:00" in _free(after)

    def test_store_failure_is_reported(self, db, business_id, availability):
        with patch.object(db, "query", side_effect=OperationalError("SELECT", {}, Exception("db down"))):
            with pytest.raises(StoreUnavailable):
                availability.resolve(db, business_id, TUESDAY, 60)

        # Nothing was cached for the failed read
        assert availability.resolve(db, business_id, TUESDAY, 60).is_open


class TestCommitments:

    def test_cancellation_frees_the_slot(self, db, business_id, availability, booking):
        result = booking.book_appointment(db, business_id, MONDAY, "09:00", "10:00")
        assert "09:00" not in _free(availability.resolve(db, business_id, MONDAY, 60))

        booking.cancel_appointment(db, result.record_id, reason="Customer request")
        assert "09:00" in _free(availability.resolve(db, business_id, MONDAY, 60))

    def test_blocked_period_listed_and_applied(self, db, business_id, availability, booking):
        booking.block_period(db, business_id, MONDAY, "14:00", "15:00", reason="Inventory")

        day = availability.resolve(db, business_id, MONDAY, 60)
        assert [(b.start_time, b.end_time, b.reason) for b in day.blocked_slots] == [
            ("14:00", "15:00", "Inventory")
        ]
        assert "13:30" not in _free(day)
        assert "14:30" not in _free(day)
        assert "13:00" in _free(day)
        assert "15:00" in _free(day)

    def test_weekly_block_only_on_matching_weekday(self, db, business_id, availability, booking):
        booking.block_period(db, business_id, MONDAY, "09:00", "10:00", recurrence_pattern="weekly")

        assert "09:00" not in _free(availability.resolve(db, business_id, MONDAY, 60))
        assert "09:00" not in _free(availability.resolve(db, business_id, NEXT_MONDAY, 60))
        assert "09:00" in _free(availability.resolve(db, business_id, TUESDAY, 60))
        # Never before the anchor
        assert "09:00" in _free(availability.resolve(db, business_id, date(2029, 12, 31), 60))

    def test_staff_block_only_affects_that_staff(self, db, business_id, staff_id, availability, booking):
        booking.block_period(db, business_id, MONDAY, "09:00", "10:00", staff_id=staff_id)

        assert "09:00" in _free(availability.resolve(db, business_id, MONDAY, 60))
        assert "09:00" not in _free(availability.resolve(db, business_id, MONDAY, 60, staff_id))


class TestOverrides:

    def test_staff_day_off(self, db, business_id, staff_id, availability, schedule):
        schedule.set_staff_override(db, business_id, staff_id, MONDAY, is_available=False, reason="Vacation")

        scoped = availability.resolve(db, business_id, MONDAY, 60, staff_id)
        assert scoped.is_open
        assert _free(scoped) == []
        assert _free(availability.resolve(db, business_id, MONDAY, 60)) != []

    def test_staff_partial_window(self, db, business_id, staff_id, availability, schedule):
        schedule.set_staff_override(db, business_id, staff_id, MONDAY, True, "13:00", "15:00")

        scoped = availability.resolve(db, business_id, MONDAY, 60, staff_id)
        assert _free(scoped) == ["13:00", "13:30", "14:00"]
        assert all(slot.staff_id == staff_id for slot in scoped.slots)

    def test_special_day_closes_business(self, db, business_id, availability, schedule):
        schedule.set_special_day(db, business_id, MONDAY, is_available=False, reason="Holiday")
        assert not availability.resolve(db, business_id, MONDAY, 60).is_open

    def test_special_day_opens_weekend(self, db, business_id, availability, schedule):
        schedule.set_special_day(db, business_id, SUNDAY, True, "10:00", "12:00")

        day = availability.resolve(db, business_id, SUNDAY, 60)
        assert day.is_open
        assert _free(day) == ["10:00", "10:30", "11:00"]


class TestNextAvailable:

    def test_end_to_end_next_slot(self, db, business_id, availability, booking):
        first = availability.find_next_available(db, business_id, 60, MONDAY)
        assert (first.date, first.start_time, first.end_time) == (MONDAY, "09:00", "10:00")

        assert booking.book_appointment(db, business_id, first.date, first.start_time, first.end_time).ok

        second = availability.find_next_available(db, business_id, 60, MONDAY)
        assert (second.date, second.start_time, second.end_time) == (MONDAY, "10:00", "11:00")

    def test_skips_closed_days(self, db, business_id, availability):
        slot = availability.find_next_available(db, business_id, 60, SATURDAY)
        assert slot.date == NEXT_MONDAY
        assert slot.start_time == "09:00"

    def test_query_facade_uses_given_reference_date(self, db, business_id, queries):
        slot = queries.find_next_available_slot(db, business_id, SATURDAY.isoformat())
        assert (slot.date, slot.start_time, slot.end_time) == (NEXT_MONDAY, "09:00", "10:00")

        with pytest.raises(TypeError):
            queries.find_next_available_slot(db, business_id)

    def test_none_within_horizon(self, db, business_id, availability):
        assert availability.find_next_available(db, business_id, 60, SATURDAY, horizon_days=2) is None

    def test_horizon_bounds(self, db, business_id, availability):
        with pytest.raises(InvalidInterval):
            availability.find_next_available(db, business_id, 60, MONDAY, horizon_days=0)
        with pytest.raises(InvalidInterval):
            availability.find_next_available(db, business_id, 60, MONDAY, horizon_days=10000)


class TestRangeAndStatistics:

    def test_range_covers_each_day(self, db, business_id, availability):
        days = availability.resolve_range(db, business_id, MONDAY, SUNDAY, 60)
        assert [d.date for d in days] == [date(2030, 1, 7 + i) for i in range(7)]
        assert [d.is_open for d in days] == [True] * 5 + [False] * 2

    def test_range_limits(self, db, business_id, availability):
        with pytest.raises(InvalidInterval):
            availability.resolve_range(db, business_id, TUESDAY, MONDAY, 60)
        with pytest.raises(InvalidInterval):
            availability.resolve_range(db, business_id, MONDAY, date(2031, 1, 7), 60)

    def test_statistics(self, db, business_id, availability, booking):
        booking.book_appointment(db, business_id, MONDAY, "09:00", "10:00")
        booking.block_period(db, business_id, MONDAY, "16:00", "17:00")

        stats = availability.statistics(db, business_id, MONDAY, MONDAY, 60)

        # 15 candidates; 09:00 and 09:30 booked, 15:30 and 16:00 blocked
        assert stats.total_slots == 15
        assert stats.available_slots == 11
        assert stats.booked_slots == 4
        assert stats.blocked_count == 1
        assert stats.utilization_rate == pytest.approx(4 / 15)

    def test_statistics_without_slots(self, db, business_id, availability):
        stats = availability.statistics(db, business_id, SATURDAY, SUNDAY, 60)
        assert stats.total_slots == 0
        assert stats.utilization_rate == 0.0
