"""
Pydantic schemas for request/response models.
"""

import uuid
from datetime import datetime, date, time
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, EmailStr, field_validator

from belle.models import UserRole, AppointmentStatus, PaymentMethod


# Base schemas
class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = {
        "from_attributes": True,
        "use_enum_values": True
    }


# Auth schemas
class SignUpRequest(BaseSchema):
    """Self sign-up schema."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=255)


class LoginRequest(BaseSchema):
    """Login request schema."""
    email: EmailStr
    password: str


class RefreshRequest(BaseSchema):
    """Refresh token request."""
    refresh_token: str


class TokenResponse(BaseSchema):
    """Token response schema."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class SessionResponse(BaseSchema):
    """The caller's resolved session."""
    profile_id: uuid.UUID
    email: str
    full_name: str
    role: str
    session_id: uuid.UUID
    is_super_admin: bool


# Profile schemas
class ProfileCreate(BaseSchema):
    """Profile creation by a super admin."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=255)
    role: UserRole = UserRole.USER


class ProfileUpdate(BaseSchema):
    """Profile update schema - all fields optional for partial updates."""
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class ProfileResponse(BaseSchema):
    """Profile response schema."""
    id: uuid.UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


# Procedure schemas
class ProcedureCreate(BaseSchema):
    name: str = Field(..., min_length=2, max_length=255)
    duration_minutes: int = Field(..., gt=0)
    default_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class ProcedureUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    duration_minutes: Optional[int] = Field(None, gt=0)
    default_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: Optional[bool] = None


class ProcedureResponse(BaseSchema):
    id: uuid.UUID
    name: str
    duration_minutes: int
    default_price: Decimal
    is_active: bool
    created_at: datetime


# Patient schemas
class PatientCreate(BaseSchema):
    """Patient creation schema."""
    full_name: str = Field(..., min_length=2, max_length=255)
    phone: str = Field(..., min_length=8, max_length=20)
    email: Optional[EmailStr] = None
    notes: Optional[str] = None
    professional_id: Optional[uuid.UUID] = Field(
        None, description="Owner professional; defaults to the caller"
    )


class PatientUpdate(BaseSchema):
    """Patient update schema."""
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, min_length=8, max_length=20)
    email: Optional[EmailStr] = None
    notes: Optional[str] = None


class PatientResponse(BaseSchema):
    """Patient response schema."""
    id: uuid.UUID
    full_name: str
    phone: str
    email: Optional[str] = None
    notes: Optional[str] = None
    professional_id: uuid.UUID
    created_at: datetime


# Appointment schemas
class AppointmentCreate(BaseSchema):
    """Appointment creation schema."""
    patient_id: uuid.UUID
    procedure_id: uuid.UUID
    professional_id: Optional[uuid.UUID] = Field(
        None, description="Professional holding the slot; defaults to the caller"
    )
    appointment_date: date
    appointment_time: time

    @field_validator("appointment_time")
    @classmethod
    def drop_sub_minute_precision(cls, v: time) -> time:
        # Slots are compared on exact equality
        return v.replace(second=0, microsecond=0)


class AppointmentStatusUpdate(BaseSchema):
    """Status transition request."""
    status: AppointmentStatus
    cancellation_reason: Optional[str] = None


class AppointmentResponse(BaseSchema):
    """Appointment response schema."""
    id: uuid.UUID
    patient_id: uuid.UUID
    procedure_id: uuid.UUID
    professional_id: uuid.UUID
    appointment_date: date
    appointment_time: time
    status: str
    cancellation_reason: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    patient_name: Optional[str] = None
    procedure_name: Optional[str] = None
    procedure_duration_minutes: Optional[int] = None
    professional_name: Optional[str] = None


class SlotAvailabilityResponse(BaseSchema):
    professional_id: uuid.UUID
    appointment_date: date
    appointment_time: time
    available: bool


# Cash register schemas
class ClosingCreate(BaseSchema):
    closing_date: Optional[date] = Field(None, description="Defaults to today in the clinic time zone")
    notes: Optional[str] = None


class ClosingUpdate(BaseSchema):
    notes: Optional[str] = None


class ClosingResponse(BaseSchema):
    id: uuid.UUID
    professional_id: uuid.UUID
    closing_date: date
    total_amount: Decimal
    notes: Optional[str] = None
    is_finalized: bool
    finalized_at: Optional[datetime] = None
    created_at: datetime
    professional_name: Optional[str] = None


class TransactionCreate(BaseSchema):
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.CASH
    appointment_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class TransactionResponse(BaseSchema):
    id: uuid.UUID
    closing_id: uuid.UUID
    appointment_id: Optional[uuid.UUID] = None
    amount: Decimal
    payment_method: str
    notes: Optional[str] = None
    created_at: datetime


class BillableAppointment(BaseSchema):
    appointment_id: uuid.UUID
    appointment_time: time
    patient_name: str
    procedure_name: str
    default_price: Decimal


# Dashboard schemas
class DashboardStats(BaseSchema):
    completed_appointments: int
    total_appointments: int
    attendance_rate: int
    total_revenue: Decimal


class UpcomingAppointment(BaseSchema):
    id: uuid.UUID
    appointment_time: time
    patient_name: str
    procedure_name: str
    professional_name: str


class ProcedureRanking(BaseSchema):
    name: str
    count: int


class DashboardResponse(BaseSchema):
    period: str
    start_date: date
    end_date: date
    stats: DashboardStats
    upcoming_appointments: List[UpcomingAppointment]
    top_procedures: List[ProcedureRanking]
