# salon_booking/errors.py

from enum import Enum


class ErrorKind(str, Enum):
    not_found = "not_found"
    unauthorized = "unauthorized"
    invalid_state = "invalid_state"
    booking_conflict = "booking_conflict"
    staff_unavailable = "staff_unavailable"
    outside_working_hours = "outside_working_hours"
    break_conflict = "break_conflict"
    vacation_conflict = "vacation_conflict"
    vacation_overlap = "vacation_overlap"
    validation_error = "validation_error"


class SchedulingError(Exception):
    """Base class for every rejection the engine reports.

    Each subclass pins one ``ErrorKind``; the HTTP layer translates the kind,
    never the class name.
    """

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    kind = ErrorKind.not_found


class UnauthorizedError(SchedulingError):
    kind = ErrorKind.unauthorized


class InvalidStateError(SchedulingError):
    kind = ErrorKind.invalid_state


class BookingConflictError(SchedulingError):
    kind = ErrorKind.booking_conflict


class StaffUnavailableError(SchedulingError):
    kind = ErrorKind.staff_unavailable


class OutsideWorkingHoursError(SchedulingError):
    kind = ErrorKind.outside_working_hours


class BreakConflictError(SchedulingError):
    kind = ErrorKind.break_conflict


class VacationConflictError(SchedulingError):
    kind = ErrorKind.vacation_conflict


class VacationOverlapError(SchedulingError):
    kind = ErrorKind.vacation_overlap


class InputValidationError(SchedulingError):
    kind = ErrorKind.validation_error
