# salon_booking/repositories.py

from datetime import date, timedelta
from typing import Optional, List

from sqlmodel import Session, select, col

from .core import day_bounds
from .data import FREED_STATUSES, BLOCKING_VACATION_STATUSES
from .errors import NotFoundError
from .models import Appointment, Service, Staff, Vacation, WorkingHours


class StaffRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, staff_id: int) -> Optional[Staff]:
        return self.session.get(Staff, staff_id)

    def require(self, staff_id: int) -> Staff:
        staff = self.get(staff_id)
        if staff is None:
            raise NotFoundError("Staff member not found")
        return staff

    def by_user(self, user_id: int) -> Optional[Staff]:
        return self.session.exec(select(Staff).where(Staff.user_id == user_id)).first()

    def lock(self, staff_id: int) -> Staff:
        """Serialise booking writes for one staff member.

        Takes the row lock (SELECT ... FOR UPDATE where supported) and bumps
        ``lock_version`` so the flush also acquires SQLite's write lock. The
        lock is held until the surrounding transaction ends.
        """
        staff = self.session.get(Staff, staff_id, with_for_update=True)
        if staff is None:
            raise NotFoundError("Staff member not found")
        staff.lock_version += 1
        self.session.add(staff)
        self.session.flush()
        return staff


class ServiceRepository:
    def __init__(self, session: Session):
        self.session = session

    def require(self, service_id: int) -> Service:
        service = self.session.get(Service, service_id)
        if service is None:
            raise NotFoundError("Service not found")
        return service

    def list_active(self) -> List[Service]:
        return list(self.session.exec(select(Service).where(Service.is_active == True).order_by(Service.name)))  # noqa: E712


class WorkingHoursRepository:
    def __init__(self, session: Session):
        self.session = session

    def for_staff(self, staff_id: int) -> List[WorkingHours]:
        stmt = (
            select(WorkingHours)
            .where(WorkingHours.staff_id == staff_id)
            .order_by(WorkingHours.day_of_week, WorkingHours.effective_from)
        )
        return list(self.session.exec(stmt))

    def for_day(self, staff_id: int, day_of_week: int) -> List[WorkingHours]:
        stmt = (
            select(WorkingHours)
            .where(WorkingHours.staff_id == staff_id)
            .where(WorkingHours.day_of_week == day_of_week)
            .order_by(col(WorkingHours.effective_from).desc())
        )
        return list(self.session.exec(stmt))

    def current_records(self, staff_id: int, day_of_week: int) -> List[WorkingHours]:
        return [wh for wh in self.for_day(staff_id, day_of_week) if wh.effective_to is None]

    def effective_on(self, staff_id: int, day_of_week: int, on_date: date) -> Optional[WorkingHours]:
        for wh in self.for_day(staff_id, day_of_week):
            if wh.is_effective_on(on_date):
                return wh
        return None

    def add(self, record: WorkingHours) -> WorkingHours:
        self.session.add(record)
        return record


class VacationRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, vacation_id: int) -> Optional[Vacation]:
        return self.session.get(Vacation, vacation_id)

    def require(self, vacation_id: int) -> Vacation:
        vacation = self.get(vacation_id)
        if vacation is None:
            raise NotFoundError("Vacation request not found")
        return vacation

    def for_staff(
        self,
        staff_id: int,
        status: Optional[str] = None,
        ending_on_or_after: Optional[date] = None,
    ) -> List[Vacation]:
        stmt = select(Vacation).where(Vacation.staff_id == staff_id)
        if status is not None:
            stmt = stmt.where(Vacation.status == status)
        if ending_on_or_after is not None:
            stmt = stmt.where(Vacation.end_date >= ending_on_or_after)
        return list(self.session.exec(stmt.order_by(Vacation.start_date)))

    def approved_covering(self, staff_id: int, on_date: date) -> Optional[Vacation]:
        stmt = (
            select(Vacation)
            .where(Vacation.staff_id == staff_id)
            .where(Vacation.status == "approved")
            .where(Vacation.start_date <= on_date)
            .where(Vacation.end_date >= on_date)
        )
        return self.session.exec(stmt).first()

    def overlapping(
        self,
        staff_id: int,
        start_date: date,
        end_date: date,
        exclude_id: Optional[int] = None,
    ) -> Optional[Vacation]:
        # inclusive ranges: [a, b] and [c, d] overlap when a <= d and b >= c
        stmt = (
            select(Vacation)
            .where(Vacation.staff_id == staff_id)
            .where(col(Vacation.status).in_(BLOCKING_VACATION_STATUSES))
            .where(Vacation.start_date <= end_date)
            .where(Vacation.end_date >= start_date)
        )
        if exclude_id is not None:
            stmt = stmt.where(Vacation.id != exclude_id)
        return self.session.exec(stmt).first()

    def add(self, vacation: Vacation) -> Vacation:
        self.session.add(vacation)
        return vacation

    def delete(self, vacation: Vacation) -> None:
        self.session.delete(vacation)


class AppointmentRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.session.get(Appointment, appointment_id)

    def require(self, appointment_id: int) -> Appointment:
        appointment = self.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    def _active(self, staff_id: int):
        return (
            select(Appointment)
            .where(Appointment.staff_id == staff_id)
            .where(col(Appointment.status).not_in(FREED_STATUSES))
        )

    def first_overlapping(
        self,
        staff_id: int,
        starts_at,
        ends_at,
        exclude_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        stmt = (
            self._active(staff_id)
            .where(Appointment.starts_at < ends_at)
            .where(Appointment.ends_at > starts_at)
        )
        if exclude_id is not None:
            stmt = stmt.where(Appointment.id != exclude_id)
        return self.session.exec(stmt).first()

    def active_on(self, staff_id: int, on_date: date) -> List[Appointment]:
        day_start, day_end = day_bounds(on_date)
        stmt = (
            self._active(staff_id)
            .where(Appointment.starts_at >= day_start)
            .where(Appointment.starts_at < day_end)
            .order_by(Appointment.starts_at)
        )
        return list(self.session.exec(stmt))

    def active_between(self, staff_id: int, first_day: date, last_day: date) -> List[Appointment]:
        """Appointments whose start date falls within [first_day, last_day]."""
        range_start, _ = day_bounds(first_day)
        range_end, _ = day_bounds(last_day + timedelta(days=1))
        stmt = (
            self._active(staff_id)
            .where(Appointment.starts_at >= range_start)
            .where(Appointment.starts_at < range_end)
            .order_by(Appointment.starts_at)
        )
        return list(self.session.exec(stmt))

    def for_staff(self, staff_id: int, on_date: Optional[date] = None, status: Optional[str] = None) -> List[Appointment]:
        stmt = select(Appointment).where(Appointment.staff_id == staff_id)
        if on_date is not None:
            day_start, day_end = day_bounds(on_date)
            stmt = stmt.where(Appointment.starts_at >= day_start).where(Appointment.starts_at < day_end)
        if status is not None:
            stmt = stmt.where(Appointment.status == status)
        return list(self.session.exec(stmt.order_by(Appointment.starts_at)))

    def due_reminders(self, on_date: date) -> List[Appointment]:
        """Confirmed appointments on ``on_date`` whose reminder hasn't gone out."""
        day_start, day_end = day_bounds(on_date)
        stmt = (
            select(Appointment)
            .where(Appointment.status == "confirmed")
            .where(Appointment.reminder_sent == False)  # noqa: E712
            .where(Appointment.starts_at >= day_start)
            .where(Appointment.starts_at < day_end)
            .order_by(Appointment.starts_at)
        )
        return list(self.session.exec(stmt))

    def for_client(self, client_id: int, status: Optional[str] = None) -> List[Appointment]:
        stmt = select(Appointment).where(Appointment.client_id == client_id)
        if status is not None:
            stmt = stmt.where(Appointment.status == status)
        return list(self.session.exec(stmt.order_by(col(Appointment.starts_at).desc())))

    def add(self, appointment: Appointment) -> Appointment:
        self.session.add(appointment)
        return appointment
