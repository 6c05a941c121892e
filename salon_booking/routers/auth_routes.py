# salon_booking/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from salon_booking.db import get_session
from salon_booking.models import User
from salon_booking.schemas import Token
from salon_booking.auth import issue_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    user = session.exec(
        select(User).where(User.email == form_data.username)
    ).first()

    if user is None or not verify_password(form_data.password, user.password_hash):
        logger.warning(f"Failed login for {form_data.username}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {"access_token": issue_token(user), "token_type": "bearer"}
