from datetime import date, time

import pytest

from salon_booking.errors import InputValidationError, InvalidStateError
from salon_booking.models import WorkingHours
from salon_booking.repositories import AppointmentRepository, WorkingHoursRepository
from salon_booking.schedule import ScheduleStore, next_day_of_week

from conftest import MONDAY, SCHEDULES_FROM, at, make_appointment


@pytest.fixture
def store(session):
    return ScheduleStore(WorkingHoursRepository(session), AppointmentRepository(session))


def test_next_day_of_week():
    assert next_day_of_week(MONDAY, 1) == MONDAY
    assert next_day_of_week(MONDAY, 3) == date(2030, 6, 12)
    assert next_day_of_week(MONDAY, 0) == date(2030, 6, 16)


class TestDefaults:
    def test_default_week(self, store, staff):
        records = store.list_schedules(staff.id)
        assert len(records) == 7
        by_day = {r.day_of_week: r for r in records}
        assert not by_day[0].is_working_day
        assert not by_day[6].is_working_day
        monday = by_day[1]
        assert monday.is_working_day
        assert (monday.start_time, monday.end_time) == (time(9, 0), time(18, 0))
        assert monday.breaks == [{"name": "Lunch", "start": 720, "end": 780}]
        assert all(r.is_default for r in records)

    def test_current_schedule_lookup(self, store, staff):
        record = store.get_current_schedule(staff.id, 1, MONDAY)
        assert record is not None and record.day_of_week == 1
        assert store.get_current_schedule(staff.id, 1, date(2023, 12, 25)) is None


class TestUpsert:
    def test_updates_hours_and_replaces_breaks(self, store, staff, session):
        record = store.upsert_day(
            staff.id,
            1,
            {"start_time": time(10, 0), "breaks": [{"name": "Coffee", "start": 900, "end": 915}]},
        )
        session.commit()
        assert record.start_time == time(10, 0)
        assert record.end_time == time(18, 0)
        assert record.breaks == [{"name": "Coffee", "start": 900, "end": 915}]
        assert len(store.list_schedules(staff.id)) == 7

    def test_creates_missing_day(self, store, session, staff):
        session.delete(store.current_record(staff.id, 6))
        session.commit()
        record = store.upsert_day(
            staff.id, 6, {"is_working_day": True, "start_time": time(10, 0), "end_time": time(14, 0)}
        )
        session.commit()
        assert record.id is not None
        assert record.effective_from == date.today()

    @pytest.mark.parametrize(
        "breaks, message",
        [
            ([{"name": "x", "start": 700, "end": 700}], "Break 0: end time must be after start time"),
            ([{"name": "x", "start": 500, "end": 560}], "Break 0: must be within working hours"),
            (
                [{"name": "a", "start": 720, "end": 780}, {"name": "b", "start": 750, "end": 800}],
                "Break 1: overlaps another break",
            ),
        ],
    )
    def test_rejects_bad_breaks(self, store, staff, breaks, message):
        with pytest.raises(InputValidationError) as exc:
            store.upsert_day(staff.id, 1, {"breaks": breaks})
        assert exc.value.message == message

    def test_rejects_unknown_fields_and_days(self, store, staff):
        with pytest.raises(InputValidationError):
            store.upsert_day(staff.id, 1, {"colour": "red"})
        with pytest.raises(InputValidationError):
            store.upsert_day(staff.id, 7, {"is_working_day": False})

    def test_null_working_day_flag_rejected(self, store, staff, session):
        with pytest.raises(InputValidationError) as exc:
            store.upsert_day(staff.id, 1, {"is_working_day": None})
        assert exc.value.message == "is_working_day must be true or false"
        assert store.current_record(staff.id, 1).is_working_day is True

    def test_working_day_needs_hours(self, store, staff):
        with pytest.raises(InputValidationError):
            store.upsert_day(staff.id, 6, {"is_working_day": True})

    def test_non_working_toggle_blocked_by_bookings(self, store, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 10))
        today = date(2030, 6, 7)  # the Friday before
        with pytest.raises(InvalidStateError) as exc:
            store.upsert_day(staff.id, 1, {"is_working_day": False}, today=today)
        assert exc.value.message == (
            "Cannot set as non-working day. There are 1 appointments scheduled for this day."
        )

    def test_non_working_toggle_ignores_cancelled(self, store, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 10), status="cancelled")
        record = store.upsert_day(staff.id, 1, {"is_working_day": False}, today=date(2030, 6, 7))
        assert record.is_working_day is False

    def test_two_current_records_is_invalid_state(self, store, staff, session):
        session.add(WorkingHours(staff_id=staff.id, day_of_week=1, effective_from=SCHEDULES_FROM,
                                 start_time=time(9, 0), end_time=time(17, 0)))
        session.commit()
        with pytest.raises(InvalidStateError):
            store.upsert_day(staff.id, 1, {"start_time": time(8, 0)})
