# salon_booking/lifecycle.py

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlmodel import Session

from .core import as_local, on_whole_minute
from .data import DEFAULT_CANCEL_REASON, DEFAULT_VACATION_REASON, EDITABLE_STATUSES
from .deps import require_staff_access
from .errors import (
    InputValidationError,
    InvalidStateError,
    SchedulingError,
    UnauthorizedError,
)
from .models import Appointment, Service, Staff, User, Vacation
from .notifications import LoggingNotifier, Notifier, dispatch
from .repositories import (
    AppointmentRepository,
    ServiceRepository,
    StaffRepository,
    VacationRepository,
    WorkingHoursRepository,
)
from .schemas import AppointmentStatus, UserRole, VacationStatus
from .validator import ConflictValidator, needs_revalidation

logger = logging.getLogger(__name__)

# fields whose change is worth telling the client about
NOTIFY_FIELDS = frozenset({"starts_at", "service_id", "staff_id", "status"})


def ensure_bookable(staff: Staff, service: Service) -> None:
    if not service.is_active:
        raise InputValidationError("This service is no longer offered")
    if not staff.is_active:
        raise InputValidationError("This staff member is not taking bookings")
    if not staff.offers(service.id):
        raise InputValidationError("This staff member does not provide the selected service")


def check_start(starts_at: datetime) -> datetime:
    starts_at = as_local(starts_at)
    if not on_whole_minute(starts_at):
        raise InputValidationError("Start time must be on a whole minute")
    return starts_at


def build_validator(session: Session) -> ConflictValidator:
    return ConflictValidator(
        appointments=AppointmentRepository(session),
        schedules=WorkingHoursRepository(session),
        vacations=VacationRepository(session),
    )


class AppointmentLifecycle:
    """Booking writes: create, update, cancel, complete, no-show.

    Every write either passes the conflict chain and commits, or rolls back
    and raises. Notifications go out after commit and can't fail the write.
    """

    def __init__(self, session: Session, notifier: Optional[Notifier] = None, now: Optional[datetime] = None):
        self.session = session
        self.notifier = notifier or LoggingNotifier()
        self._now = now
        self.appointments = AppointmentRepository(session)
        self.services = ServiceRepository(session)
        self.staff = StaffRepository(session)
        self.validator = build_validator(session)

    @property
    def now(self) -> datetime:
        return self._now or datetime.now()

    # -- reads -------------------------------------------------------------

    def get(self, actor: User, appointment_id: int) -> Appointment:
        appointment = self.appointments.require(appointment_id)
        if actor.role == UserRole.client and appointment.client_id != actor.id:
            raise UnauthorizedError("Not authorized to view this appointment")
        return appointment

    # -- writes ------------------------------------------------------------

    def book(
        self,
        actor: User,
        staff_id: int,
        service_id: int,
        starts_at: datetime,
        notes: str = "",
        client_id: Optional[int] = None,
    ) -> Appointment:
        service = self.services.require(service_id)
        staff = self.staff.require(staff_id)
        ensure_bookable(staff, service)

        starts_at = check_start(starts_at)
        if starts_at < self.now:
            raise InputValidationError("Cannot book an appointment in the past")

        if actor.role == UserRole.client or client_id is None:
            client_id = actor.id
        ends_at = starts_at + timedelta(minutes=service.duration)

        try:
            self.staff.lock(staff_id)
            self.validator.validate_appointment(staff_id, starts_at, ends_at)
            appointment = self.appointments.add(
                Appointment(
                    client_id=client_id,
                    staff_id=staff_id,
                    service_id=service_id,
                    starts_at=starts_at,
                    ends_at=ends_at,
                    notes=notes or "",
                    status=AppointmentStatus.pending.value,
                )
            )
            self.session.commit()
        except SchedulingError:
            self.session.rollback()
            raise
        self.session.refresh(appointment)
        logger.info(f"Booked appointment {appointment.id} for staff {staff_id} at {starts_at}")

        when = f"{starts_at:%A, %B %d, %Y} at {starts_at:%H:%M}"
        sent = self._notify_user(
            client_id,
            "Appointment Confirmation",
            f"Your appointment for {service.name} is booked for {when}.",
        )
        self._notify_user(staff.user_id, "New Appointment Notification", f"New appointment for {service.name} on {when}.")
        if sent:
            appointment.confirmation_sent = True
            self.session.add(appointment)
            self.session.commit()
            self.session.refresh(appointment)
        return appointment

    def update(self, actor: User, appointment_id: int, changes: Dict[str, Any]) -> Appointment:
        appointment = self.appointments.require(appointment_id)
        if actor.role == UserRole.client and appointment.client_id != actor.id:
            raise UnauthorizedError("Not authorized to update this appointment")
        self._require_editable(appointment, "update")

        if actor.role == UserRole.client:
            # clients can only touch their notes
            changes = {k: v for k, v in changes.items() if k == "notes"}
        updates = self._resolve_updates(appointment, changes)
        if not updates:
            raise InputValidationError("No update fields provided")

        changed = {k for k, v in updates.items() if getattr(appointment, k) != v}
        if "starts_at" in changed and updates["starts_at"] < self.now:
            raise InputValidationError("Cannot move an appointment into the past")

        staff_id = updates.get("staff_id", appointment.staff_id)
        try:
            if needs_revalidation(changed):
                for locked_id in sorted({appointment.staff_id, staff_id}):
                    self.staff.lock(locked_id)
                self.validator.validate_appointment(
                    staff_id,
                    updates.get("starts_at", appointment.starts_at),
                    updates.get("ends_at", appointment.ends_at),
                    exclude_id=appointment.id,
                )
            for key, value in updates.items():
                setattr(appointment, key, value)
            appointment.updated_at = self.now
            self.session.add(appointment)
            self.session.commit()
        except SchedulingError:
            self.session.rollback()
            raise
        self.session.refresh(appointment)
        logger.info(f"Updated appointment {appointment.id}: {', '.join(sorted(changed)) or 'no changes'}")

        if changed & NOTIFY_FIELDS:
            self._notify_user(
                appointment.client_id,
                "Appointment Updated",
                f"Your appointment is now on {appointment.starts_at:%A, %B %d, %Y} at "
                f"{appointment.starts_at:%H:%M}. Status: {appointment.status}.",
            )
        return appointment

    def cancel(self, actor: User, appointment_id: int, reason: Optional[str] = None) -> Appointment:
        appointment = self.appointments.require(appointment_id)
        if actor.role == UserRole.client and appointment.client_id != actor.id:
            raise UnauthorizedError("Not authorized to cancel this appointment")
        self._require_editable(appointment, "cancel")

        appointment.status = AppointmentStatus.cancelled.value
        appointment.cancelled_by = actor.id
        appointment.cancel_reason = reason or DEFAULT_CANCEL_REASON
        appointment.updated_at = self.now
        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)
        logger.info(f"Cancelled appointment {appointment.id} by user {actor.id}")

        by = "you" if actor.role == UserRole.client else "the salon"
        self._notify_user(
            appointment.client_id,
            "Appointment Cancelled",
            f"Your appointment on {appointment.starts_at:%B %d, %Y at %H:%M} was cancelled by {by}. "
            f"Reason: {appointment.cancel_reason}",
        )
        if actor.role == UserRole.client:
            staff = self.staff.get(appointment.staff_id)
            if staff is not None:
                self._notify_user(
                    staff.user_id,
                    "Appointment Cancelled by Client",
                    f"Appointment on {appointment.starts_at:%B %d, %Y at %H:%M} was cancelled. "
                    f"Reason: {appointment.cancel_reason}",
                )
        return appointment

    def complete(self, actor: User, appointment_id: int) -> Appointment:
        appointment = self._finish(actor, appointment_id, AppointmentStatus.completed, "complete")
        self._notify_user(
            appointment.client_id,
            "Thank You for Your Visit",
            "Thank you for visiting our salon today. We hope to see you again soon!",
        )
        return appointment

    def mark_no_show(self, actor: User, appointment_id: int) -> Appointment:
        return self._finish(actor, appointment_id, AppointmentStatus.no_show, "mark as no-show")

    def send_reminders(self, now: Optional[datetime] = None) -> "ReminderReport":
        """Remind clients of tomorrow's confirmed appointments, once each."""
        tomorrow = (now or self.now).date() + timedelta(days=1)
        due = self.appointments.due_reminders(tomorrow)
        report = ReminderReport(total=len(due))

        for appointment in due:
            service = self.session.get(Service, appointment.service_id)
            what = f" for a {service.name}" if service is not None else ""
            sent = self._notify_user(
                appointment.client_id,
                "Appointment Reminder",
                f"This is a reminder that you have an appointment tomorrow, "
                f"{appointment.starts_at:%A, %B %d, %Y} at {appointment.starts_at:%H:%M}"
                f"{what}.",
            )
            if not sent:
                report.failed.append(appointment.id)
                continue
            appointment.reminder_sent = True
            self.session.add(appointment)
            self.session.commit()
            report.sent.append(appointment.id)

        logger.info(f"Reminders for {tomorrow}: {len(report.sent)} sent, {len(report.failed)} failed")
        return report

    # -- helpers -----------------------------------------------------------

    def _finish(self, actor: User, appointment_id: int, target: AppointmentStatus, verb: str) -> Appointment:
        appointment = self.appointments.require(appointment_id)
        if actor.role not in (UserRole.staff, UserRole.admin):
            raise UnauthorizedError(f"Not authorized to {verb} this appointment")
        if actor.role == UserRole.staff:
            own = self.staff.by_user(actor.id)
            if own is None or own.id != appointment.staff_id:
                raise UnauthorizedError(f"Not authorized to {verb} this appointment")

        if appointment.status != AppointmentStatus.confirmed.value:
            raise InvalidStateError(f"Cannot {verb} appointment with status: {appointment.status}")

        appointment.status = target.value
        appointment.updated_at = self.now
        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)
        logger.info(f"Appointment {appointment.id} -> {target.value}")
        return appointment

    def _require_editable(self, appointment: Appointment, verb: str):
        if appointment.status not in EDITABLE_STATUSES:
            raise InvalidStateError(f"Cannot {verb} appointment with status: {appointment.status}")

    def _resolve_updates(self, appointment: Appointment, changes: Dict[str, Any]) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}

        if changes.get("service_id") is not None or changes.get("starts_at") is not None:
            service = self.services.require(changes.get("service_id") or appointment.service_id)
            starts_at = check_start(changes.get("starts_at") or appointment.starts_at)
            updates["service_id"] = service.id
            updates["starts_at"] = starts_at
            updates["ends_at"] = starts_at + timedelta(minutes=service.duration)

        if changes.get("staff_id") is not None:
            updates["staff_id"] = self.staff.require(changes["staff_id"]).id

        if "staff_id" in updates or "service_id" in updates:
            staff = self.staff.require(updates.get("staff_id", appointment.staff_id))
            service = self.services.require(updates.get("service_id", appointment.service_id))
            ensure_bookable(staff, service)

        status = changes.get("status")
        if status is not None:
            status = AppointmentStatus(status).value
            if status not in (AppointmentStatus.confirmed.value, appointment.status):
                raise InvalidStateError(
                    f"Cannot move appointment from {appointment.status} to {status} through an update"
                )
            updates["status"] = status

        if changes.get("notes") is not None:
            updates["notes"] = changes["notes"]
        return updates

    def _notify_user(self, user_id: int, subject: str, body: str) -> bool:
        user = self.session.get(User, user_id)
        if user is None:
            logger.warning(f"No user {user_id} to notify about '{subject}'")
            return False
        return dispatch(self.notifier, user.email, subject, body)


@dataclass
class ReminderReport:
    total: int = 0
    sent: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Sent {len(self.sent)} reminders, {len(self.failed)} failed"


@dataclass
class VacationOutcome:
    vacation: Vacation
    conflicting_appointments: List[Appointment] = field(default_factory=list)

    @property
    def message(self) -> Optional[str]:
        if not self.conflicting_appointments:
            return None
        return (
            f"Vacation approved but there are {len(self.conflicting_appointments)} appointments "
            f"during this period that need to be rescheduled."
        )


class VacationLifecycle:
    """Time-off requests: request, decide, edit, withdraw.

    Approval never touches appointments; overlapping live bookings come back
    as advisory data for a human to reschedule.
    """

    def __init__(self, session: Session, today: Optional[date] = None):
        self.session = session
        self._today = today
        self.vacations = VacationRepository(session)
        self.staff = StaffRepository(session)
        self.validator = build_validator(session)

    @property
    def today(self) -> date:
        return self._today or date.today()

    def list_for_staff(self, actor: User, staff_id: int, status: Optional[str] = None, upcoming: bool = False) -> List[Vacation]:
        staff = self.staff.require(staff_id)
        require_staff_access(actor, staff, "access these vacations")
        return self.vacations.for_staff(
            staff_id,
            status=status,
            ending_on_or_after=self.today if upcoming else None,
        )

    def request(
        self,
        actor: User,
        staff_id: int,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None,
    ) -> VacationOutcome:
        staff = self.staff.require(staff_id)
        require_staff_access(actor, staff, "request vacation for this staff member")

        approved = actor.role == UserRole.admin
        try:
            self.validator.validate_vacation(staff_id, start_date, end_date)
            vacation = self.vacations.add(
                Vacation(
                    staff_id=staff_id,
                    start_date=start_date,
                    end_date=end_date,
                    reason=reason or DEFAULT_VACATION_REASON,
                    status=VacationStatus.approved.value if approved else VacationStatus.pending.value,
                    approved_by=actor.id if approved else None,
                )
            )
            self.session.commit()
        except SchedulingError:
            self.session.rollback()
            raise
        self.session.refresh(vacation)
        logger.info(f"Vacation {vacation.id} requested for staff {staff_id} ({vacation.status})")
        return self._outcome(vacation)

    def decide(
        self,
        actor: User,
        vacation_id: int,
        status: str,
        rejection_reason: Optional[str] = None,
    ) -> VacationOutcome:
        vacation = self.vacations.require(vacation_id)
        if actor.role != UserRole.admin:
            raise UnauthorizedError("Not authorized to update vacation status")
        if status not in (VacationStatus.approved.value, VacationStatus.rejected.value):
            raise InputValidationError("Status must be either approved or rejected")
        if vacation.status != VacationStatus.pending.value:
            raise InvalidStateError(f"Cannot change vacation with status: {vacation.status}")

        vacation.status = status
        vacation.approved_by = actor.id
        if status == VacationStatus.rejected.value and rejection_reason:
            vacation.rejection_reason = rejection_reason
        self.session.add(vacation)
        self.session.commit()
        self.session.refresh(vacation)
        logger.info(f"Vacation {vacation.id} {status} by user {actor.id}")
        return self._outcome(vacation)

    def update(
        self,
        actor: User,
        vacation_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        reason: Optional[str] = None,
    ) -> Vacation:
        vacation = self.vacations.require(vacation_id)
        require_staff_access(actor, self.staff.require(vacation.staff_id), "update this vacation")
        if vacation.status != VacationStatus.pending.value:
            raise InvalidStateError(f"Cannot update vacation with status: {vacation.status}")

        new_start = start_date or vacation.start_date
        new_end = end_date or vacation.end_date
        try:
            self.validator.validate_vacation(vacation.staff_id, new_start, new_end, exclude_id=vacation.id)
            vacation.start_date = new_start
            vacation.end_date = new_end
            if reason is not None:
                vacation.reason = reason
            self.session.add(vacation)
            self.session.commit()
        except SchedulingError:
            self.session.rollback()
            raise
        self.session.refresh(vacation)
        return vacation

    def withdraw(self, actor: User, vacation_id: int) -> None:
        vacation = self.vacations.require(vacation_id)
        require_staff_access(actor, self.staff.require(vacation.staff_id), "cancel this vacation")
        if vacation.status not in (VacationStatus.pending.value, VacationStatus.approved.value):
            raise InvalidStateError(f"Cannot cancel vacation with status: {vacation.status}")
        if vacation.start_date <= self.today:
            raise InvalidStateError("Cannot cancel vacation that has already started")

        self.vacations.delete(vacation)
        self.session.commit()
        logger.info(f"Vacation {vacation_id} withdrawn by user {actor.id}")

    def _outcome(self, vacation: Vacation) -> VacationOutcome:
        if vacation.status != VacationStatus.approved.value:
            return VacationOutcome(vacation)
        conflicts = self.validator.vacation_conflicts(vacation.staff_id, vacation.start_date, vacation.end_date)
        if conflicts:
            logger.warning(
                f"Vacation {vacation.id} approved with {len(conflicts)} conflicting appointments"
            )
        return VacationOutcome(vacation, conflicts)
