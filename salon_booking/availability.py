# salon_booking/availability.py

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator, List, Optional, Sequence

from .core import Interval, at_minutes, datetime_interval, day_of_week, overlaps, to_minutes
from .data import SLOT_MINUTES
from .errors import InputValidationError
from .repositories import AppointmentRepository, VacationRepository, WorkingHoursRepository
from .validator import break_intervals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    duration: int


class AvailableSlots:
    """Bookable starts for one staff member, date and duration.

    Iterating scans the grid again over the inputs captured when the
    calculator built this object; nothing is cached between scans.
    """

    def __init__(
        self,
        on_date: date,
        duration: int,
        working: Optional[Interval] = None,
        blocked: Sequence[Interval] = (),
        step: int = SLOT_MINUTES,
    ):
        self.on_date = on_date
        self.duration = duration
        self.working = working
        self.blocked = tuple(blocked)
        self.step = step

    def __iter__(self) -> Iterator[Slot]:
        if self.working is None:
            return
        last_start = self.working.end - self.duration
        t = self.working.start
        while t <= last_start:
            candidate = Interval(t, t + self.duration)
            if not any(overlaps(candidate, b) for b in self.blocked):
                yield Slot(
                    start=at_minutes(self.on_date, t),
                    end=at_minutes(self.on_date, t + self.duration),
                    duration=self.duration,
                )
            t += self.step


class AvailabilityCalculator:
    def __init__(
        self,
        schedules: WorkingHoursRepository,
        vacations: VacationRepository,
        appointments: AppointmentRepository,
    ):
        self.schedules = schedules
        self.vacations = vacations
        self.appointments = appointments

    def compute_slots(self, staff_id: int, on_date: date, duration: int) -> AvailableSlots:
        if duration <= 0:
            raise InputValidationError("Service duration must be positive")

        # 1) Working day
        schedule = self.schedules.effective_on(staff_id, day_of_week(on_date), on_date)
        if schedule is None or not schedule.is_working_day:
            return AvailableSlots(on_date, duration)

        # 2) Approved time off
        if self.vacations.approved_covering(staff_id, on_date) is not None:
            return AvailableSlots(on_date, duration)

        # 3) Working window and breaks
        working = Interval(to_minutes(schedule.start_time), to_minutes(schedule.end_time))
        blocked: List[Interval] = break_intervals(schedule.breaks)

        # 4) Live bookings that day
        for appt in self.appointments.active_on(staff_id, on_date):
            blocked.append(datetime_interval(appt.starts_at, appt.ends_at))

        logger.debug(
            f"Computing slots for staff {staff_id} on {on_date}: "
            f"{working.start}-{working.end}, {len(blocked)} blocked intervals"
        )
        return AvailableSlots(on_date, duration, working=working, blocked=blocked)
