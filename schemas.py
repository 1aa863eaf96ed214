from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from models.facility import FACILITY_STATUSES
from models.report import REPORT_TYPES
from utils.clock import to_naive

ReservationStatus = Literal["pending", "confirmed", "cancelled"]


class _Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


# ---------- auth / users ----------

class RegisterRequest(_Schema):
    username: str = Field(min_length=3, max_length=20)
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=30)


class LoginRequest(_Schema):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ProfileUpdate(_Schema):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=30)


class ChangePasswordRequest(_Schema):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


class UserCreate(RegisterRequest):
    role_id: int
    is_active: bool = True


class UserUpdate(_Schema):
    role_id: Optional[int] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if self.role_id is None and self.is_active is None:
            raise ValueError("No update fields provided")
        return self


class UserSearch(_Schema):
    query: str = Field(min_length=2, description="Search query must be at least 2 characters long")


# ---------- facilities / activities ----------

class FacilityCreate(_Schema):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    capacity: int = Field(gt=0)
    status: str = "ACTIVE"
    opening_hour: int = Field(ge=0, le=23)
    closing_hour: int = Field(ge=0, le=23)
    activity_ids: Optional[List[int]] = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str) -> str:
        value = value.upper()
        if value not in FACILITY_STATUSES:
            raise ValueError(f"status must be one of {', '.join(FACILITY_STATUSES)}")
        return value

    @model_validator(mode="after")
    def _hours(self):
        if self.closing_hour <= self.opening_hour:
            raise ValueError("closing_hour must be later than opening_hour")
        return self


class FacilityUpdate(_Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    status: Optional[str] = None
    opening_hour: Optional[int] = Field(default=None, ge=0, le=23)
    closing_hour: Optional[int] = Field(default=None, ge=0, le=23)
    activity_ids: Optional[List[int]] = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value):
        if value is None:
            return value
        value = value.upper()
        if value not in FACILITY_STATUSES:
            raise ValueError(f"status must be one of {', '.join(FACILITY_STATUSES)}")
        return value


class ActivityCreate(_Schema):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    duration_minutes: int = Field(default=60, gt=0)
    price: int = Field(ge=0)
    max_participants: int = Field(gt=0)
    is_active: bool = True
    facility_ids: Optional[List[int]] = None


class ActivityUpdate(_Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    price: Optional[int] = Field(default=None, ge=0)
    max_participants: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
    facility_ids: Optional[List[int]] = None


class AvailableSlotsQuery(_Schema):
    facility_id: int = Field(alias="facilityId")
    day: date = Field(alias="date")


# ---------- reservations ----------

class ReservationCreate(_Schema):
    facility_id: int
    activity_id: int
    slot_id: int


class ReservationUpdate(_Schema):
    status: Optional[ReservationStatus] = None
    slot_id: Optional[int] = None
    cancellation_reason: Optional[str] = Field(default=None, max_length=255)
    internal_notes: Optional[str] = None


class CancelRequest(_Schema):
    cancellation_reason: str = Field(min_length=1, max_length=255)


class ManualReservationCreate(_Schema):
    user_id: Optional[int] = None
    first_name: Optional[str] = Field(default=None, max_length=120)
    last_name: Optional[str] = Field(default=None, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[1-9]\d{1,14}$")

    activity_id: int
    slot_id: int
    status: Literal["pending", "confirmed"] = "confirmed"
    internal_notes: Optional[str] = None

    @model_validator(mode="after")
    def _identifies_user(self):
        if self.user_id is None and not self.email:
            raise ValueError("Either an existing user_id or an email must be provided")
        return self


# ---------- staff ----------

class ShiftCreate(_Schema):
    employee_id: int  # user id of the employee
    start_time: datetime
    end_time: datetime
    shift_type: str = Field(min_length=1, max_length=60)

    @field_validator("start_time", "end_time")
    @classmethod
    def _local_time(cls, value: datetime) -> datetime:
        return to_naive(value)

    @model_validator(mode="after")
    def _order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ShiftUpdate(_Schema):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    shift_type: Optional[str] = Field(default=None, min_length=1, max_length=60)

    @field_validator("start_time", "end_time")
    @classmethod
    def _local_time(cls, value):
        return to_naive(value) if value is not None else value

    @model_validator(mode="after")
    def _not_empty(self):
        if self.start_time is None and self.end_time is None and self.shift_type is None:
            raise ValueError("At least one field must be provided for update")
        return self


class SettingsUpdate(_Schema):
    default_opening_hour: int = Field(ge=0, le=23)
    default_closing_hour: int = Field(ge=0, le=23)
    max_booking_lead_days: int = Field(ge=1)
    cancellation_deadline_hours: int = Field(ge=0)
    max_active_reservations_per_user: int = Field(ge=1)

    @model_validator(mode="after")
    def _hours(self):
        if self.default_closing_hour <= self.default_opening_hour:
            raise ValueError("default_closing_hour must be later than default_opening_hour")
        return self


class ReportRequest(_Schema):
    report_type: str
    title: str = Field(min_length=1, max_length=160)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime

    @field_validator("report_type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        value = value.upper()
        if value not in REPORT_TYPES:
            raise ValueError(f"report_type must be one of {', '.join(REPORT_TYPES)}")
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def _local_time(cls, value: datetime) -> datetime:
        return to_naive(value)

    @model_validator(mode="after")
    def _range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self
