# salon_booking/schemas.py

from pydantic import BaseModel, Field, field_validator
from enum import Enum
from datetime import datetime, date, time
from typing import List, Optional

from .core import as_local, from_minutes, to_minutes
from .data import DEFAULT_STAFF_TITLE


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    client = "client"
    staff = "staff"
    admin = "admin"


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no-show"


class VacationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    first_name: str = ""
    last_name: str = ""


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    first_name: str = ""
    last_name: str = ""


class StaffCreate(UserCreate):
    title: str = DEFAULT_STAFF_TITLE
    bio: str = Field(default="New team member", max_length=1000)
    available_services: List[int] = []


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    price: float = Field(ge=0)
    duration: int = Field(ge=5, description="minutes")
    category: str = "haircut"


class ServicePublic(ServiceCreate):
    id: int
    is_active: bool


class StaffPublic(BaseModel):
    id: int
    user_id: int
    title: str
    bio: str
    is_active: bool
    available_services: List[int]


class BreakIn(BaseModel):
    name: str = "Break"
    start_time: time
    end_time: time

    def as_record(self) -> dict:
        return {"name": self.name, "start": to_minutes(self.start_time), "end": to_minutes(self.end_time)}


class BreakOut(BaseModel):
    name: str
    start_time: time
    end_time: time


class ScheduleUpdate(BaseModel):
    is_working_day: Optional[bool] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    breaks: Optional[List[BreakIn]] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None

    def as_patch(self) -> dict:
        patch = self.model_dump(exclude_unset=True, exclude={"breaks"})
        if "breaks" in self.model_fields_set:
            patch["breaks"] = [b.as_record() for b in (self.breaks or [])]
        return patch


class SchedulePublic(BaseModel):
    id: int
    staff_id: int
    day_of_week: int
    is_working_day: bool
    start_time: Optional[time]
    end_time: Optional[time]
    breaks: List[BreakOut]
    effective_from: date
    effective_to: Optional[date]
    is_default: bool

    @field_validator("breaks", mode="before")
    @classmethod
    def breaks_from_minutes(cls, value):
        return [
            {"name": b.get("name", "Break"), "start_time": from_minutes(b["start"]), "end_time": from_minutes(b["end"])}
            if "start" in b else b
            for b in value
        ]


class VacationCreate(BaseModel):
    start_date: date
    end_date: date
    reason: Optional[str] = Field(default=None, max_length=500)


class VacationUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = Field(default=None, max_length=500)


class VacationDecision(BaseModel):
    status: VacationStatus
    rejection_reason: Optional[str] = Field(default=None, max_length=500)


class VacationPublic(BaseModel):
    id: int
    staff_id: int
    start_date: date
    end_date: date
    reason: str
    status: VacationStatus
    approved_by: Optional[int]
    rejection_reason: Optional[str]


class AppointmentCreate(BaseModel):
    staff_id: int
    service_id: int
    starts_at: datetime
    notes: str = Field(default="", max_length=500)
    client_id: Optional[int] = None  # staff/admin booking for a client

    @field_validator("starts_at")
    @classmethod
    def starts_at_local(cls, value: datetime) -> datetime:
        return as_local(value)


class AppointmentUpdate(BaseModel):
    staff_id: Optional[int] = None
    service_id: Optional[int] = None
    starts_at: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("starts_at")
    @classmethod
    def starts_at_local(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_local(value) if value is not None else None


class AppointmentCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=200)


class AppointmentPublic(BaseModel):
    id: int
    client_id: int
    staff_id: int
    service_id: int
    starts_at: datetime
    ends_at: datetime
    status: AppointmentStatus
    notes: str
    reminder_sent: bool
    confirmation_sent: bool
    cancelled_by: Optional[int]
    cancel_reason: Optional[str]


class VacationResult(BaseModel):
    vacation: VacationPublic
    conflicting_appointments: List[AppointmentPublic] = []
    message: Optional[str] = None


class SlotPublic(BaseModel):
    start: datetime
    end: datetime
    duration: int


class AvailabilityResponse(BaseModel):
    staff_id: int
    date: date
    service_id: int
    slots: List[SlotPublic]


class ReminderResult(BaseModel):
    message: str
    total: int
    sent: List[int]
    failed: List[int]
