from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from salon_booking import models  # noqa: F401
from salon_booking.auth import issue_token
from salon_booking.db import get_session
from salon_booking.deps import get_notifier
from salon_booking.main import app
from salon_booking.models import Appointment, Service, Staff, User
from salon_booking.repositories import AppointmentRepository, WorkingHoursRepository
from salon_booking.schedule import ScheduleStore

# 2030-06-10 is a Monday; bookings live far enough ahead to never be "past"
MONDAY = date(2030, 6, 10)
TUESDAY = date(2030, 6, 11)
SUNDAY = date(2030, 6, 9)
SCHEDULES_FROM = date(2024, 1, 1)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


class RecordingNotifier:
    def __init__(self, fail: bool = False, fail_for=()):
        self.fail = fail
        self.fail_for = set(fail_for)
        self.sent = []

    def send(self, to, subject, body):
        if self.fail or to in self.fail_for:
            raise RuntimeError("smtp down")
        self.sent.append((to, subject))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session, notifier):
    # requests share the test session so fixtures and API see the same rows
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(session, email, role="client"):
    user = User(email=email, password_hash="not-a-real-hash", role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_service(session, name="Haircut", duration=60):
    service = Service(name=name, duration=duration, price=40.0)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


def make_staff(session, email="stylist@example.com", available_services=None):
    user = make_user(session, email, role="staff")
    staff = Staff(user_id=user.id, title="Stylist", available_services=available_services or [])
    session.add(staff)
    session.commit()
    session.refresh(staff)
    store = ScheduleStore(WorkingHoursRepository(session), AppointmentRepository(session))
    store.create_default_schedules(staff.id, effective_from=SCHEDULES_FROM)
    session.commit()
    return staff


def make_appointment(session, staff, service, client_user, starts_at, minutes=60, status="confirmed"):
    appt = Appointment(
        client_id=client_user.id,
        staff_id=staff.id,
        service_id=service.id,
        starts_at=starts_at,
        ends_at=starts_at + timedelta(minutes=minutes),
        status=status,
    )
    session.add(appt)
    session.commit()
    session.refresh(appt)
    return appt


def auth_headers(user):
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def service(session):
    return make_service(session)


@pytest.fixture
def staff(session, service):
    return make_staff(session)


@pytest.fixture
def customer(session):
    return make_user(session, "client@example.com")


@pytest.fixture
def admin(session):
    return make_user(session, "admin@example.com", role="admin")
