# salon_booking/routers/vacations_routes.py

from fastapi import APIRouter, Depends
from sqlmodel import Session

from salon_booking.db import get_session
from salon_booking.models import User
from salon_booking.lifecycle import VacationLifecycle
from salon_booking.schemas import VacationDecision, VacationPublic, VacationResult, VacationUpdate
from salon_booking.auth import get_current_user

router = APIRouter(
    prefix="/vacations",
    tags=["vacations"],
)


@router.put("/{vacation_id}/status", response_model=VacationResult)
def update_vacation_status(
    vacation_id: int,
    payload: VacationDecision,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    outcome = VacationLifecycle(session).decide(
        current_user, vacation_id, payload.status.value, payload.rejection_reason
    )
    return {
        "vacation": outcome.vacation,
        "conflicting_appointments": outcome.conflicting_appointments,
        "message": outcome.message,
    }


@router.patch("/{vacation_id}", response_model=VacationPublic)
def update_vacation(
    vacation_id: int,
    payload: VacationUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return VacationLifecycle(session).update(
        current_user,
        vacation_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )


@router.delete("/{vacation_id}")
def cancel_vacation(
    vacation_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    VacationLifecycle(session).withdraw(current_user, vacation_id)
    return {"success": True}
