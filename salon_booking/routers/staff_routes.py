# salon_booking/routers/staff_routes.py

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from salon_booking.db import get_session
from salon_booking.models import Staff, User
from salon_booking.repositories import (
    AppointmentRepository,
    ServiceRepository,
    StaffRepository,
    VacationRepository,
    WorkingHoursRepository,
)
from salon_booking.schedule import ScheduleStore
from salon_booking.availability import AvailabilityCalculator
from salon_booking.lifecycle import VacationLifecycle, ensure_bookable
from salon_booking.errors import SchedulingError
from salon_booking.schemas import (
    AppointmentPublic,
    AppointmentStatus,
    AvailabilityResponse,
    SchedulePublic,
    ScheduleUpdate,
    StaffCreate,
    StaffPublic,
    UserRole,
    VacationCreate,
    VacationPublic,
    VacationResult,
    VacationStatus,
)
from salon_booking.auth import get_current_user, hash_password
from salon_booking.deps import require_role, require_staff_access

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/staff",
    tags=["staff"],
)


def schedule_store(session: Session) -> ScheduleStore:
    return ScheduleStore(WorkingHoursRepository(session), AppointmentRepository(session))


@router.post("", response_model=StaffPublic, status_code=201)
def create_staff_member(
    payload: StaffCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    require_role(current_user, "admin")

    existing = session.exec(select(User).where(User.email == payload.email)).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    services = ServiceRepository(session)
    for service_id in payload.available_services:
        services.require(service_id)

    # user + staff + default week commit together or not at all
    try:
        user = User(
            email=payload.email,
            password_hash=hash_password(payload.password),
            role=UserRole.staff.value,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        session.add(user)
        session.flush()

        staff = Staff(
            user_id=user.id,
            title=payload.title,
            bio=payload.bio,
            available_services=list(payload.available_services),
        )
        session.add(staff)
        session.flush()

        schedule_store(session).create_default_schedules(staff.id)
        session.commit()
    except (IntegrityError, SchedulingError):
        session.rollback()
        logger.exception(f"Provisioning staff {payload.email} failed, rolled back")
        raise

    session.refresh(staff)
    logger.info(f"Provisioned staff {staff.id} for user {user.id}")
    return staff


@router.get("/{staff_id}", response_model=StaffPublic)
def get_staff_member(staff_id: int, session: Session = Depends(get_session)):
    return StaffRepository(session).require(staff_id)


# -- schedules ---------------------------------------------------------------


@router.get("/{staff_id}/schedules", response_model=List[SchedulePublic])
def get_staff_schedules(
    staff_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    staff = StaffRepository(session).require(staff_id)
    require_staff_access(current_user, staff, "access these schedules")
    return schedule_store(session).list_schedules(staff_id)


@router.put("/{staff_id}/schedules/{day_of_week}", response_model=SchedulePublic)
def update_schedule(
    staff_id: int,
    day_of_week: int,
    payload: ScheduleUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    staff = StaffRepository(session).require(staff_id)
    require_staff_access(current_user, staff, "update these schedules")

    try:
        record = schedule_store(session).upsert_day(staff_id, day_of_week, payload.as_patch())
        session.commit()
    except SchedulingError:
        session.rollback()
        raise
    session.refresh(record)
    return record


# -- vacations ---------------------------------------------------------------


@router.get("/{staff_id}/vacations", response_model=List[VacationPublic])
def get_staff_vacations(
    staff_id: int,
    status: Optional[VacationStatus] = None,
    upcoming: bool = False,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return VacationLifecycle(session).list_for_staff(
        current_user,
        staff_id,
        status=status.value if status else None,
        upcoming=upcoming,
    )


@router.post("/{staff_id}/vacations", response_model=VacationResult, status_code=201)
def request_vacation(
    staff_id: int,
    payload: VacationCreate,
    response: Response,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    outcome = VacationLifecycle(session).request(
        current_user, staff_id, payload.start_date, payload.end_date, payload.reason
    )
    if outcome.conflicting_appointments:
        response.status_code = 200
    return {
        "vacation": outcome.vacation,
        "conflicting_appointments": outcome.conflicting_appointments,
        "message": outcome.message,
    }


# -- availability and bookings -----------------------------------------------


@router.get("/{staff_id}/availability", response_model=AvailabilityResponse)
def staff_availability(
    staff_id: int,
    date: date,
    service_id: int,
    session: Session = Depends(get_session),
):
    staff = StaffRepository(session).require(staff_id)
    service = ServiceRepository(session).require(service_id)
    ensure_bookable(staff, service)

    calculator = AvailabilityCalculator(
        WorkingHoursRepository(session),
        VacationRepository(session),
        AppointmentRepository(session),
    )
    slots = calculator.compute_slots(staff_id, date, service.duration)
    return {
        "staff_id": staff_id,
        "date": date,
        "service_id": service_id,
        "slots": [{"start": s.start, "end": s.end, "duration": s.duration} for s in slots],
    }


@router.get("/{staff_id}/appointments", response_model=List[AppointmentPublic])
def list_staff_appointments(
    staff_id: int,
    on_date: Optional[date] = None,
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    staff = StaffRepository(session).require(staff_id)
    require_staff_access(current_user, staff, "view these appointments")
    return AppointmentRepository(session).for_staff(
        staff_id,
        on_date=on_date,
        status=status.value if status else None,
    )
