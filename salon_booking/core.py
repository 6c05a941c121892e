# salon_booking/core.py

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from .errors import InputValidationError

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class Interval:
    """Half-open [start, end) span of minutes since midnight."""

    start: int
    end: int

    def __post_init__(self):
        if self.end <= self.start:
            raise InputValidationError("End time must be after start time")

    @property
    def length(self) -> int:
        return self.end - self.start


def overlaps(a: Interval, b: Interval) -> bool:
    # covers "starts inside", "ends inside", "contains" and "contained by"
    return a.start < b.end and a.end > b.start


def contains(outer: Interval, inner: Interval) -> bool:
    return inner.start >= outer.start and inner.end <= outer.end


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    if not (0 <= minutes < MINUTES_PER_DAY):
        raise InputValidationError(f"Time of day out of range: {minutes} minutes")
    return time(minutes // 60, minutes % 60)


def time_interval(start: time, end: time) -> Interval:
    return Interval(to_minutes(start), to_minutes(end))


def datetime_interval(starts_at: datetime, ends_at: datetime) -> Interval:
    """Project [starts_at, ends_at) onto the start day's minute axis.

    An end on a later calendar day lands past 1439, so it can never be
    contained in a working-hours interval.
    """
    midnight = datetime.combine(starts_at.date(), time.min)
    start = int((starts_at - midnight).total_seconds() // 60)
    # partial minutes still occupy the minute they started in
    end = -int(-(ends_at - midnight).total_seconds() // 60)
    return Interval(start, end)


def as_local(value: datetime) -> datetime:
    """Naive local wall-clock time; aware values are converted first."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def on_whole_minute(value: datetime) -> bool:
    return value.second == 0 and value.microsecond == 0


def at_minutes(on_date: date, minutes: int) -> datetime:
    return datetime.combine(on_date, time.min) + timedelta(minutes=minutes)


def day_of_week(d: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return d.isoweekday() % 7


def day_bounds(d: date) -> tuple[datetime, datetime]:
    start = datetime.combine(d, time.min)
    return start, start + timedelta(days=1)
