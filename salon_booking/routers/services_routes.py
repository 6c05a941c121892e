# salon_booking/routers/services_routes.py

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from salon_booking.db import get_session
from salon_booking.models import Service, User
from salon_booking.repositories import ServiceRepository
from salon_booking.schemas import ServiceCreate, ServicePublic
from salon_booking.auth import get_current_user
from salon_booking.deps import require_role

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


@router.get("", response_model=List[ServicePublic])
def list_services(session: Session = Depends(get_session)):
    return ServiceRepository(session).list_active()


@router.get("/{service_id}", response_model=ServicePublic)
def get_service(service_id: int, session: Session = Depends(get_session)):
    return ServiceRepository(session).require(service_id)


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    require_role(current_user, "admin")
    db_service = Service(**service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service
