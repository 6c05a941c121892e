# salon_booking/validator.py

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from .core import Interval, contains, datetime_interval, day_of_week, overlaps, time_interval
from .errors import (
    BookingConflictError,
    BreakConflictError,
    InputValidationError,
    OutsideWorkingHoursError,
    StaffUnavailableError,
    VacationConflictError,
    VacationOverlapError,
)
from .models import Appointment
from .repositories import AppointmentRepository, VacationRepository, WorkingHoursRepository

logger = logging.getLogger(__name__)

# Appointment fields whose change requires the full conflict chain to run again
REVALIDATE_FIELDS = frozenset({"starts_at", "ends_at", "staff_id"})


def needs_revalidation(changed_fields: Iterable[str], policy=REVALIDATE_FIELDS) -> bool:
    return any(field in policy for field in changed_fields)


def break_intervals(breaks: List[dict]) -> List[Interval]:
    return [Interval(b["start"], b["end"]) for b in breaks]


class ConflictValidator:
    """Authoritative scheduling checks, run before any write commits.

    Appointment checks run in a fixed order and the first failing one is
    reported: booking conflict, staff unavailable, outside working hours,
    break conflict, vacation conflict.
    """

    def __init__(
        self,
        appointments: AppointmentRepository,
        schedules: WorkingHoursRepository,
        vacations: VacationRepository,
    ):
        self.appointments = appointments
        self.schedules = schedules
        self.vacations = vacations

    def validate_appointment(
        self,
        staff_id: int,
        starts_at: datetime,
        ends_at: datetime,
        exclude_id: Optional[int] = None,
    ) -> None:
        if ends_at <= starts_at:
            raise InputValidationError("Appointment end must be after its start")

        # 1) Another live booking for the same staff
        clash = self.appointments.first_overlapping(staff_id, starts_at, ends_at, exclude_id=exclude_id)
        if clash is not None:
            logger.warning(f"Booking conflict for staff {staff_id} at {starts_at} with appointment {clash.id}")
            raise BookingConflictError("The selected time slot is already booked")

        # 2) Working day
        on_date = starts_at.date()
        schedule = self.schedules.effective_on(staff_id, day_of_week(on_date), on_date)
        if schedule is None or not schedule.is_working_day:
            raise StaffUnavailableError("Staff is not available on this day")

        # 3) Working hours
        candidate = datetime_interval(starts_at, ends_at)
        working = time_interval(schedule.start_time, schedule.end_time)
        if not contains(working, candidate):
            raise OutsideWorkingHoursError("This time is outside of staff working hours")

        # 4) Breaks
        for br in break_intervals(schedule.breaks):
            if overlaps(candidate, br):
                raise BreakConflictError("This time conflicts with staff break time")

        # 5) Approved time off
        if self.vacations.approved_covering(staff_id, on_date) is not None:
            raise VacationConflictError("Staff is on vacation during this date")

    def validate_vacation(
        self,
        staff_id: int,
        start_date: date,
        end_date: date,
        exclude_id: Optional[int] = None,
    ) -> None:
        if end_date <= start_date:
            raise InputValidationError("End date must be after start date")

        existing = self.vacations.overlapping(staff_id, start_date, end_date, exclude_id=exclude_id)
        if existing is not None:
            logger.warning(f"Vacation overlap for staff {staff_id} with vacation {existing.id}")
            raise VacationOverlapError("This vacation period overlaps with an existing vacation")

    def vacation_conflicts(self, staff_id: int, start_date: date, end_date: date) -> List[Appointment]:
        """Live appointments inside an approved vacation. Advisory only."""
        return self.appointments.active_between(staff_id, start_date, end_date)
