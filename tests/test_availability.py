from datetime import time, timedelta

import pytest

from salon_booking.availability import AvailabilityCalculator, AvailableSlots
from salon_booking.core import Interval
from salon_booking.errors import InputValidationError
from salon_booking.models import Vacation
from salon_booking.repositories import AppointmentRepository, VacationRepository, WorkingHoursRepository
from salon_booking.validator import ConflictValidator

from conftest import MONDAY, SUNDAY, at, make_appointment


@pytest.fixture
def calculator(session):
    return AvailabilityCalculator(
        WorkingHoursRepository(session),
        VacationRepository(session),
        AppointmentRepository(session),
    )


def starts(slots):
    return [s.start.time() for s in slots]


class TestAvailableSlots:
    def test_grid_with_break(self, calculator, staff):
        slots = list(calculator.compute_slots(staff.id, MONDAY, 60))
        got = starts(slots)

        assert got[0] == time(9, 0)
        assert got[-1] == time(17, 0)
        assert time(11, 0) in got
        assert time(11, 15) not in got
        assert time(12, 45) not in got
        assert time(13, 0) in got
        # 09:00..11:00 and 13:00..17:00 on a 15 minute grid
        assert len(got) == 9 + 17
        for slot in slots:
            assert slot.end - slot.start == timedelta(minutes=60)
            assert not (slot.start < at(MONDAY, 13) and slot.end > at(MONDAY, 12))

    def test_booked_time_is_excluded(self, calculator, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 10))
        got = starts(calculator.compute_slots(staff.id, MONDAY, 60))
        assert time(9, 0) in got
        for blocked in (time(9, 15), time(9, 45), time(10, 0), time(10, 45)):
            assert blocked not in got
        assert time(11, 0) in got

    def test_cancelled_booking_frees_time(self, calculator, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 10), status="cancelled")
        assert time(10, 0) in starts(calculator.compute_slots(staff.id, MONDAY, 60))

    def test_non_working_day_is_empty(self, calculator, staff):
        assert list(calculator.compute_slots(staff.id, SUNDAY, 60)) == []

    def test_vacation_day_is_empty(self, calculator, staff, session):
        session.add(Vacation(staff_id=staff.id, start_date=MONDAY, end_date=MONDAY + timedelta(days=2),
                             status="approved"))
        session.commit()
        assert list(calculator.compute_slots(staff.id, MONDAY, 60)) == []

    def test_pending_vacation_does_not_block(self, calculator, staff, session):
        session.add(Vacation(staff_id=staff.id, start_date=MONDAY, end_date=MONDAY + timedelta(days=2)))
        session.commit()
        assert list(calculator.compute_slots(staff.id, MONDAY, 60))

    def test_rejects_non_positive_duration(self, calculator, staff):
        with pytest.raises(InputValidationError):
            calculator.compute_slots(staff.id, MONDAY, 0)

    def test_every_slot_passes_validation(self, calculator, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 14, 30), minutes=45)
        validator = ConflictValidator(
            AppointmentRepository(session), WorkingHoursRepository(session), VacationRepository(session)
        )
        for slot in calculator.compute_slots(staff.id, MONDAY, 60):
            validator.validate_appointment(staff.id, slot.start, slot.end)


def test_iteration_is_restartable():
    slots = AvailableSlots(MONDAY, 30, working=Interval(540, 660), blocked=[Interval(600, 615)])
    first = [s.start for s in slots]
    second = [s.start for s in slots]
    assert first == second
    assert [t.time() for t in first] == [time(9, 0), time(9, 15), time(9, 30), time(10, 15), time(10, 30)]


def test_duration_longer_than_day_yields_nothing():
    assert list(AvailableSlots(MONDAY, 180, working=Interval(540, 660))) == []
