# salon_booking/models.py

from dataclasses import dataclass
from typing import Optional, List, Union
from datetime import datetime, date as Date, time

from sqlalchemy import Index
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # client, staff or admin
    first_name: str = ""
    last_name: str = ""


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: str = ""
    price: float = 0.0
    duration: int  # minutes
    category: str = "haircut"
    is_active: bool = True


class Staff(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, unique=True)
    title: str
    bio: str = ""
    is_active: bool = True
    # empty list means the staff member offers every service
    available_services: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    # bumped under row lock by every booking write for this staff member
    lock_version: int = 0

    def offers(self, service_id: int) -> bool:
        return not self.available_services or service_id in self.available_services


@dataclass(frozen=True)
class Current:
    def covers(self, on_date: Date) -> bool:
        return True


@dataclass(frozen=True)
class Superseded:
    until: Date

    def covers(self, on_date: Date) -> bool:
        return on_date <= self.until


EffectivePeriod = Union[Current, Superseded]


class WorkingHours(SQLModel, table=True):
    __tablename__ = "working_hours"
    __table_args__ = (
        Index("ix_working_hours_staff_day", "staff_id", "day_of_week", "effective_from"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    staff_id: int = Field(foreign_key="staff.id")
    day_of_week: int  # 0=Sunday .. 6=Saturday
    is_working_day: bool = True
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    # [{"name": "Lunch", "start": 720, "end": 780}] in minutes since midnight
    breaks: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    effective_from: Date
    effective_to: Optional[Date] = None
    is_default: bool = False

    @property
    def period(self) -> EffectivePeriod:
        if self.effective_to is None:
            return Current()
        return Superseded(until=self.effective_to)

    def is_effective_on(self, on_date: Date) -> bool:
        return self.effective_from <= on_date and self.period.covers(on_date)


class Vacation(SQLModel, table=True):
    __table_args__ = (
        Index("ix_vacation_staff_dates", "staff_id", "start_date", "end_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    staff_id: int = Field(foreign_key="staff.id")
    start_date: Date
    end_date: Date
    reason: str = "Time off"
    status: str = "pending"
    approved_by: Optional[int] = Field(default=None, foreign_key="user.id")
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


class Appointment(SQLModel, table=True):
    __table_args__ = (
        Index("ix_appointment_staff_start", "staff_id", "starts_at"),
        Index("ix_appointment_client_start", "client_id", "starts_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    client_id: int = Field(foreign_key="user.id")
    staff_id: int = Field(foreign_key="staff.id")
    service_id: int = Field(foreign_key="service.id")
    starts_at: datetime
    ends_at: datetime
    status: str = Field(default="pending", index=True)
    notes: str = ""
    reminder_sent: bool = False
    confirmation_sent: bool = False
    cancelled_by: Optional[int] = Field(default=None, foreign_key="user.id")
    cancel_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
