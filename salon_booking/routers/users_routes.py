# salon_booking/routers/users_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salon_booking.db import get_session
from salon_booking.models import User
from salon_booking.schemas import UserCreate, UserPublic, UserRole
from salon_booking.auth import get_current_user, hash_password

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    # 1) Check if email already exists
    existing = session.exec(
        select(User).where(User.email == user.email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # 2) Public registration always creates a client
    db_user = User(
        email=user.email,
        password_hash=hash_password(user.password),
        role=UserRole.client.value,
        first_name=user.first_name,
        last_name=user.last_name,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    logger.info(f"Registered client {db_user.id}")

    return db_user
