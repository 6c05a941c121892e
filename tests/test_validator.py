from datetime import date, time, timedelta

import pytest

from salon_booking.errors import (
    BookingConflictError,
    BreakConflictError,
    InputValidationError,
    OutsideWorkingHoursError,
    StaffUnavailableError,
    VacationConflictError,
    VacationOverlapError,
)
from salon_booking.models import Vacation
from salon_booking.repositories import AppointmentRepository, VacationRepository, WorkingHoursRepository
from salon_booking.validator import REVALIDATE_FIELDS, ConflictValidator, needs_revalidation

from conftest import MONDAY, SUNDAY, TUESDAY, at, make_appointment


@pytest.fixture
def validator(session):
    return ConflictValidator(
        AppointmentRepository(session),
        WorkingHoursRepository(session),
        VacationRepository(session),
    )


def add_vacation(session, staff, start, end, status="approved"):
    vacation = Vacation(staff_id=staff.id, start_date=start, end_date=end, status=status)
    session.add(vacation)
    session.commit()
    session.refresh(vacation)
    return vacation


class TestAppointmentChecks:
    def test_valid_slot_passes(self, validator, staff):
        validator.validate_appointment(staff.id, at(MONDAY, 10), at(MONDAY, 11))

    def test_end_before_start(self, validator, staff):
        with pytest.raises(InputValidationError):
            validator.validate_appointment(staff.id, at(MONDAY, 11), at(MONDAY, 10))

    def test_booking_conflict(self, validator, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 10))
        with pytest.raises(BookingConflictError) as exc:
            validator.validate_appointment(staff.id, at(MONDAY, 10, 30), at(MONDAY, 11, 30))
        assert exc.value.message == "The selected time slot is already booked"

    def test_back_to_back_is_fine(self, validator, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 10))
        validator.validate_appointment(staff.id, at(MONDAY, 11), at(MONDAY, 12))

    @pytest.mark.parametrize("status", ["cancelled", "no-show"])
    def test_freed_statuses_do_not_block(self, validator, staff, service, customer, session, status):
        make_appointment(session, staff, service, customer, at(MONDAY, 10), status=status)
        validator.validate_appointment(staff.id, at(MONDAY, 10), at(MONDAY, 11))

    def test_excluding_self(self, validator, staff, service, customer, session):
        appt = make_appointment(session, staff, service, customer, at(MONDAY, 10))
        validator.validate_appointment(staff.id, at(MONDAY, 10, 30), at(MONDAY, 11, 30), exclude_id=appt.id)

    def test_non_working_day(self, validator, staff):
        with pytest.raises(StaffUnavailableError) as exc:
            validator.validate_appointment(staff.id, at(SUNDAY, 10), at(SUNDAY, 11))
        assert exc.value.message == "Staff is not available on this day"

    def test_no_schedule_yet(self, validator, staff):
        with pytest.raises(StaffUnavailableError):
            validator.validate_appointment(staff.id, at(date(2023, 12, 25), 10), at(date(2023, 12, 25), 11))

    @pytest.mark.parametrize("start, end", [((8, 30), (9, 30)), ((17, 30), (18, 30))])
    def test_outside_working_hours(self, validator, staff, start, end):
        with pytest.raises(OutsideWorkingHoursError):
            validator.validate_appointment(staff.id, at(MONDAY, *start), at(MONDAY, *end))

    def test_past_midnight_is_outside_hours(self, validator, staff):
        with pytest.raises(OutsideWorkingHoursError):
            validator.validate_appointment(staff.id, at(MONDAY, 17), at(TUESDAY, 1))

    def test_break_conflict(self, validator, staff):
        with pytest.raises(BreakConflictError) as exc:
            validator.validate_appointment(staff.id, at(MONDAY, 11, 30), at(MONDAY, 12, 30))
        assert exc.value.message == "This time conflicts with staff break time"

    def test_hours_are_checked_before_breaks(self, session, validator, staff):
        record = WorkingHoursRepository(session).effective_on(staff.id, 1, MONDAY)
        record.breaks = [{"name": "Early", "start": 540, "end": 570}]
        session.add(record)
        session.commit()
        # starts before opening and also runs into the break
        with pytest.raises(OutsideWorkingHoursError):
            validator.validate_appointment(staff.id, at(MONDAY, 8, 45), at(MONDAY, 9, 15))

    def test_vacation_conflict(self, validator, staff, session):
        add_vacation(session, staff, MONDAY, MONDAY + timedelta(days=2))
        with pytest.raises(VacationConflictError) as exc:
            validator.validate_appointment(staff.id, at(TUESDAY, 10), at(TUESDAY, 11))
        assert exc.value.message == "Staff is on vacation during this date"

    def test_booking_conflict_wins_over_vacation(self, validator, staff, service, customer, session):
        make_appointment(session, staff, service, customer, at(MONDAY, 10))
        add_vacation(session, staff, MONDAY, TUESDAY)
        with pytest.raises(BookingConflictError):
            validator.validate_appointment(staff.id, at(MONDAY, 10), at(MONDAY, 11))

    def test_rejected_vacation_does_not_block(self, validator, staff, session):
        add_vacation(session, staff, MONDAY, TUESDAY, status="rejected")
        validator.validate_appointment(staff.id, at(MONDAY, 10), at(MONDAY, 11))


class TestVacationChecks:
    def test_end_must_follow_start(self, validator, staff):
        with pytest.raises(InputValidationError) as exc:
            validator.validate_vacation(staff.id, TUESDAY, MONDAY)
        assert exc.value.message == "End date must be after start date"

    @pytest.mark.parametrize("status", ["pending", "approved"])
    def test_overlap_with_live_request(self, validator, staff, session, status):
        add_vacation(session, staff, MONDAY, MONDAY + timedelta(days=4), status=status)
        with pytest.raises(VacationOverlapError):
            validator.validate_vacation(staff.id, MONDAY + timedelta(days=4), MONDAY + timedelta(days=6))

    def test_rejected_request_does_not_overlap(self, validator, staff, session):
        add_vacation(session, staff, MONDAY, TUESDAY, status="rejected")
        validator.validate_vacation(staff.id, MONDAY, TUESDAY)

    def test_edit_excludes_itself(self, validator, staff, session):
        vacation = add_vacation(session, staff, MONDAY, TUESDAY, status="pending")
        validator.validate_vacation(staff.id, MONDAY, MONDAY + timedelta(days=3), exclude_id=vacation.id)

    def test_conflicts_are_reported_not_changed(self, validator, staff, service, customer, session):
        appt = make_appointment(session, staff, service, customer, at(TUESDAY, 10))
        make_appointment(session, staff, service, customer, at(TUESDAY, 14), status="cancelled")
        conflicts = validator.vacation_conflicts(staff.id, MONDAY, MONDAY + timedelta(days=2))
        assert [a.id for a in conflicts] == [appt.id]
        assert conflicts[0].status == "confirmed"


def test_revalidation_policy():
    assert REVALIDATE_FIELDS == {"starts_at", "ends_at", "staff_id"}
    assert needs_revalidation({"notes", "staff_id"})
    assert not needs_revalidation({"notes", "status", "service_id"})
    assert needs_revalidation({"notes"}, policy={"notes"})
