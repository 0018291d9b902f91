"""
Tests for ScheduleService: weekly hours, special days and staff overrides.
"""
from datetime import date

import pytest

from booking_engine.core.exceptions import InvalidInterval, NotFound

from conftest import MONDAY, NEXT_MONDAY, SATURDAY, TUESDAY

TODAY = date(2030, 1, 1)


class TestBusinessHours:

    def test_get_business_hours(self, db, business_id, schedule):
        hours = schedule.get_business_hours(db, business_id)

        assert [h["day_of_week"] for h in hours] == list(range(7))
        assert hours[0]["day_name"] == "Monday"
        assert (hours[0]["open_time"], hours[0]["close_time"]) == ("09:00", "17:00")
        assert hours[6]["is_open"] is False

    def test_unknown_business(self, db, schedule):
        with pytest.raises(NotFound):
            schedule.get_business_hours(db, "missing")

    def test_set_hours_with_breaks(self, db, business_id, schedule, availability):
        saved = schedule.set_business_hours(
            db, business_id, 0, True, "10:00", "16:00",
            breaks=[{"start_time": "12:00", "end_time": "12:30"}],
            today=TODAY,
        )

        assert saved["hours"]["open_time"] == "10:00"
        assert saved["hours"]["breaks"] == [{"start_time": "12:00", "end_time": "12:30"}]
        assert saved["affected_appointments"] == []

        day = availability.resolve(db, business_id, MONDAY, 60)
        starts = [s.start_time for s in day.slots]
        assert starts[0] == "10:00"
        assert "11:30" not in starts
        assert "12:00" not in starts
        assert "12:30" in starts

    def test_open_saturday(self, db, business_id, schedule, availability):
        assert not availability.resolve(db, business_id, SATURDAY, 60).is_open

        schedule.set_business_hours(db, business_id, 5, True, "10:00", "14:00", today=TODAY)

        assert availability.resolve(db, business_id, SATURDAY, 60).is_open

    def test_close_at_midnight(self, db, business_id, schedule, availability, booking):
        saved = schedule.set_business_hours(db, business_id, 0, True, "20:00", "24:00", today=TODAY)
        assert saved["hours"]["close_time"] == "24:00"

        day = availability.resolve(db, business_id, MONDAY, 60)
        assert day.slots[-1].start_time == "23:00"
        assert day.slots[-1].end_time == "24:00"
        assert booking.book_appointment(db, business_id, MONDAY, "23:00", "24:00").ok

    def test_closing_a_day(self, db, business_id, schedule):
        saved = schedule.set_business_hours(db, business_id, 1, False, today=TODAY)
        assert saved["hours"] == {
            "day_of_week": 1, "is_open": False, "open_time": None, "close_time": None, "breaks": []
        }

    @pytest.mark.parametrize("open_time,close_time,breaks", [
        ("17:00", "09:00", []),
        ("09:00", None, []),
        ("9am", "17:00", []),
        ("09:00", "17:00", [{"start_time": "08:00", "end_time": "09:30"}]),
        ("09:00", "17:00", [{"start_time": "12:00", "end_time": "13:00"},
                            {"start_time": "12:30", "end_time": "13:30"}]),
        ("09:00", "17:00", [{"start_time": "12:00"}]),
    ])
    def test_rejects_invalid_hours(self, db, business_id, schedule, open_time, close_time, breaks):
        with pytest.raises(InvalidInterval):
            schedule.set_business_hours(db, business_id, 0, True, open_time, close_time, breaks, today=TODAY)

    def test_rejects_bad_weekday(self, db, business_id, schedule):
        with pytest.raises(InvalidInterval):
            schedule.set_business_hours(db, business_id, 7, True, "09:00", "17:00", today=TODAY)

    def test_reports_affected_appointments(self, db, business_id, schedule, booking):
        early = booking.book_appointment(db, business_id, MONDAY, "09:00", "10:00").record_id
        lunch = booking.book_appointment(db, business_id, NEXT_MONDAY, "12:00", "13:00").record_id
        fine = booking.book_appointment(db, business_id, NEXT_MONDAY, "14:00", "15:00").record_id
        booking.book_appointment(db, business_id, TUESDAY, "09:00", "10:00")

        saved = schedule.set_business_hours(
            db, business_id, 0, True, "10:00", "17:00",
            breaks=[{"start_time": "12:30", "end_time": "13:30"}],
            today=TODAY,
        )

        affected = [a["appointment_id"] for a in saved["affected_appointments"]]
        assert affected == [early, lunch]
        assert fine not in affected

    def test_past_and_cancelled_appointments_are_not_affected(self, db, business_id, schedule, booking):
        cancelled = booking.book_appointment(db, business_id, NEXT_MONDAY, "09:00", "10:00").record_id
        booking.cancel_appointment(db, cancelled)
        booking.book_appointment(db, business_id, MONDAY, "09:00", "10:00")

        saved = schedule.set_business_hours(db, business_id, 0, False, today=MONDAY)
        assert saved["affected_appointments"] == []

    def test_closing_reports_every_upcoming_appointment(self, db, business_id, schedule, booking):
        booking.book_appointment(db, business_id, MONDAY, "09:00", "10:00")
        booking.book_appointment(db, business_id, NEXT_MONDAY, "15:00", "16:00")

        saved = schedule.set_business_hours(db, business_id, 0, False, today=TODAY)
        assert len(saved["affected_appointments"]) == 2


class TestSpecialDays:

    def test_alternative_hours_keep_fitting_breaks(self, db, business_id, schedule, availability):
        schedule.set_business_hours(
            db, business_id, 0, True, "09:00", "17:00",
            breaks=[{"start_time": "12:00", "end_time": "13:00"}, {"start_time": "15:00", "end_time": "15:30"}],
            today=TODAY,
        )
        schedule.set_special_day(db, business_id, MONDAY, True, "11:00", "14:00", reason="Half day")

        day = availability.resolve(db, business_id, MONDAY, 60)
        assert (day.open_time, day.close_time) == ("11:00", "14:00")
        assert [s.start_time for s in day.slots] == ["11:00", "13:00"]

    def test_special_day_update_and_remove(self, db, business_id, schedule, availability):
        schedule.set_special_day(db, business_id, MONDAY, False, reason="Holiday")
        assert not availability.resolve(db, business_id, MONDAY, 60).is_open

        schedule.set_special_day(db, business_id, MONDAY, True, "13:00", "15:00")
        assert availability.resolve(db, business_id, MONDAY, 60).open_time == "13:00"

        schedule.remove_special_day(db, business_id, MONDAY)
        assert availability.resolve(db, business_id, MONDAY, 60).open_time == "09:00"

    def test_special_day_requires_both_times(self, db, business_id, schedule):
        with pytest.raises(InvalidInterval):
            schedule.set_special_day(db, business_id, MONDAY, True, "13:00", None)

    def test_remove_missing_special_day(self, db, business_id, schedule):
        with pytest.raises(NotFound):
            schedule.remove_special_day(db, business_id, MONDAY)


class TestStaffOverrides:

    def test_set_and_remove(self, db, business_id, staff_id, schedule, availability):
        schedule.set_staff_override(db, business_id, staff_id, MONDAY, False, reason="Training")
        assert availability.resolve(db, business_id, MONDAY, 60, staff_id).available_slots() == []

        schedule.remove_staff_override(db, business_id, staff_id, MONDAY)
        assert availability.resolve(db, business_id, MONDAY, 60, staff_id).available_slots() != []

    def test_unknown_staff(self, db, business_id, schedule):
        with pytest.raises(NotFound):
            schedule.set_staff_override(db, business_id, "missing", MONDAY, False)

    def test_remove_missing_override(self, db, business_id, staff_id, schedule):
        with pytest.raises(NotFound):
            schedule.remove_staff_override(db, business_id, staff_id, MONDAY)
