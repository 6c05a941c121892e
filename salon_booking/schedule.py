# salon_booking/schedule.py

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from .core import Interval, overlaps, contains, time_interval
from .data import (
    DEFAULT_BREAKS,
    DEFAULT_DAY_END,
    DEFAULT_DAY_START,
    DEFAULT_WORKING_DAYS,
)
from .errors import InputValidationError, InvalidStateError
from .models import WorkingHours
from .repositories import AppointmentRepository, WorkingHoursRepository

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("is_working_day", "start_time", "end_time", "breaks", "effective_from", "effective_to")


def next_day_of_week(from_date: date, day_of_week: int) -> date:
    """First date on or after ``from_date`` falling on ``day_of_week`` (0=Sunday)."""
    current = from_date.isoweekday() % 7
    return from_date + timedelta(days=(7 + day_of_week - current) % 7)


def validate_working_hours(record: WorkingHours) -> None:
    if not (0 <= record.day_of_week <= 6):
        raise InputValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday)")
    if record.effective_to is not None and record.effective_to < record.effective_from:
        raise InputValidationError("effective_to cannot be before effective_from")
    if not record.is_working_day:
        return
    if record.start_time is None or record.end_time is None:
        raise InputValidationError("Working days need a start_time and an end_time")

    working = time_interval(record.start_time, record.end_time)
    seen: List[Interval] = []
    for index, br in enumerate(record.breaks):
        try:
            interval = Interval(br["start"], br["end"])
        except InputValidationError:
            raise InputValidationError(f"Break {index}: end time must be after start time")
        if not contains(working, interval):
            raise InputValidationError(f"Break {index}: must be within working hours")
        if any(overlaps(interval, other) for other in seen):
            raise InputValidationError(f"Break {index}: overlaps another break")
        seen.append(interval)


class ScheduleStore:
    """Weekly working hours per staff member and day of week."""

    def __init__(self, schedules: WorkingHoursRepository, appointments: AppointmentRepository):
        self.schedules = schedules
        self.appointments = appointments

    def get_current_schedule(self, staff_id: int, day_of_week: int, on_date: date) -> Optional[WorkingHours]:
        return self.schedules.effective_on(staff_id, day_of_week, on_date)

    def list_schedules(self, staff_id: int) -> List[WorkingHours]:
        return self.schedules.for_staff(staff_id)

    def current_record(self, staff_id: int, day_of_week: int) -> Optional[WorkingHours]:
        current = self.schedules.current_records(staff_id, day_of_week)
        if len(current) > 1:
            raise InvalidStateError(
                f"Staff {staff_id} has {len(current)} current schedules for day {day_of_week}"
            )
        return current[0] if current else None

    def upsert_day(
        self,
        staff_id: int,
        day_of_week: int,
        patch: Dict[str, Any],
        today: Optional[date] = None,
    ) -> WorkingHours:
        """Apply a partial update to the current record, or create one.

        The caller commits. Turning a working day off is refused while the
        next occurrence of that weekday still holds live appointments.
        """
        if not (0 <= day_of_week <= 6):
            raise InputValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday)")
        unknown = set(patch) - set(PATCHABLE_FIELDS)
        if unknown:
            raise InputValidationError(f"Unknown schedule fields: {', '.join(sorted(unknown))}")
        if "is_working_day" in patch and patch["is_working_day"] is None:
            raise InputValidationError("is_working_day must be true or false")

        today = today or date.today()
        record = self.current_record(staff_id, day_of_week)

        if record is None:
            record = WorkingHours(
                staff_id=staff_id,
                day_of_week=day_of_week,
                effective_from=patch.get("effective_from") or today,
            )
            is_new = True
        else:
            is_new = False
            turning_off = patch.get("is_working_day") is False and record.is_working_day
            if turning_off:
                next_date = next_day_of_week(today, day_of_week)
                booked = self.appointments.active_on(staff_id, next_date)
                if booked:
                    raise InvalidStateError(
                        f"Cannot set as non-working day. There are {len(booked)} "
                        f"appointments scheduled for this day."
                    )

        for field, value in patch.items():
            if field == "effective_from" and value is None:
                continue
            if field == "breaks":
                # replaced wholesale so the JSON column registers the change
                value = [dict(b) for b in (value or [])]
            setattr(record, field, value)

        validate_working_hours(record)
        self.schedules.add(record)
        logger.info(
            f"{'Created' if is_new else 'Updated'} schedule for staff {staff_id}, day {day_of_week}"
        )
        return record

    def create_default_schedules(self, staff_id: int, effective_from: Optional[date] = None) -> List[WorkingHours]:
        effective_from = effective_from or date.today()
        records = []
        for day in range(7):
            if day in DEFAULT_WORKING_DAYS:
                record = WorkingHours(
                    staff_id=staff_id,
                    day_of_week=day,
                    is_working_day=True,
                    start_time=DEFAULT_DAY_START,
                    end_time=DEFAULT_DAY_END,
                    breaks=[dict(b) for b in DEFAULT_BREAKS],
                    effective_from=effective_from,
                    is_default=True,
                )
            else:
                record = WorkingHours(
                    staff_id=staff_id,
                    day_of_week=day,
                    is_working_day=False,
                    effective_from=effective_from,
                    is_default=True,
                )
            records.append(self.schedules.add(record))
        return records
