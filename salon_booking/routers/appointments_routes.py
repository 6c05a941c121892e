# salon_booking/routers/appointments_routes.py

from typing import Optional, List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from salon_booking.db import get_session
from salon_booking.models import User
from salon_booking.repositories import AppointmentRepository
from salon_booking.lifecycle import AppointmentLifecycle
from salon_booking.notifications import Notifier
from salon_booking.schemas import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentUpdate,
    ReminderResult,
)
from salon_booking.auth import get_current_user
from salon_booking.deps import get_notifier, require_role


router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


def lifecycle(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> AppointmentLifecycle:
    return AppointmentLifecycle(session, notifier=notifier)


@router.post("", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    appointments: AppointmentLifecycle = Depends(lifecycle),
    current_user: User = Depends(get_current_user),
):
    return appointments.book(
        current_user,
        staff_id=appt.staff_id,
        service_id=appt.service_id,
        starts_at=appt.starts_at,
        notes=appt.notes,
        client_id=appt.client_id,
    )


@router.get("/me", response_model=List[AppointmentPublic])
def list_my_appointments(
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return AppointmentRepository(session).for_client(
        current_user.id,
        status=status.value if status else None,
    )


@router.post("/send-reminders", response_model=ReminderResult)
def send_reminders(
    appointments: AppointmentLifecycle = Depends(lifecycle),
    current_user: User = Depends(get_current_user),
):
    require_role(current_user, "admin")
    report = appointments.send_reminders()
    return {
        "message": report.message,
        "total": report.total,
        "sent": report.sent,
        "failed": report.failed,
    }


@router.get("/{appt_id}", response_model=AppointmentPublic)
def get_appointment(
    appt_id: int,
    appointments: AppointmentLifecycle = Depends(lifecycle),
    current_user: User = Depends(get_current_user),
):
    return appointments.get(current_user, appt_id)


@router.put("/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: int,
    changes: AppointmentUpdate,
    appointments: AppointmentLifecycle = Depends(lifecycle),
    current_user: User = Depends(get_current_user),
):
    return appointments.update(current_user, appt_id, changes.model_dump(exclude_unset=True))


@router.put("/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    body: Optional[AppointmentCancel] = None,
    appointments: AppointmentLifecycle = Depends(lifecycle),
    current_user: User = Depends(get_current_user),
):
    return appointments.cancel(current_user, appt_id, reason=body.reason if body else None)


@router.put("/{appt_id}/complete", response_model=AppointmentPublic)
def complete_appointment(
    appt_id: int,
    appointments: AppointmentLifecycle = Depends(lifecycle),
    current_user: User = Depends(get_current_user),
):
    return appointments.complete(current_user, appt_id)


@router.put("/{appt_id}/no-show", response_model=AppointmentPublic)
def mark_no_show(
    appt_id: int,
    appointments: AppointmentLifecycle = Depends(lifecycle),
    current_user: User = Depends(get_current_user),
):
    return appointments.mark_no_show(current_user, appt_id)
