"""
SQLModel models for the clinic database schema.
"""

import uuid
from datetime import datetime, date, time
from decimal import Decimal
from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, DateTime, Index, UniqueConstraint, text

from belle.core.timeutils import utcnow

TIMESTAMP = DateTime(timezone=True)


class ProfileBase(SQLModel):
    """Base profile model."""
    email: str = Field(index=True, unique=True)
    full_name: str
    role: str = Field(default="user")
    is_active: bool = Field(default=True)
    last_login: Optional[datetime] = Field(default=None, sa_type=TIMESTAMP)


class Profile(ProfileBase, table=True):
    """Profile model - one per authenticated identity (a professional)."""
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("role IN ('super_admin', 'user')", name="ck_profiles_role"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)


class LoginSession(SQLModel, table=True):
    """Server side record of a signed-in session; revoked on sign-out."""
    __tablename__ = "login_sessions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    profile_id: uuid.UUID = Field(foreign_key="profiles.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)
    revoked_at: Optional[datetime] = Field(default=None, sa_type=TIMESTAMP)


class ProcedureBase(SQLModel):
    """Base procedure model."""
    name: str
    duration_minutes: int
    default_price: Decimal = Field(max_digits=10, decimal_places=2)
    is_active: bool = Field(default=True)


class Procedure(ProcedureBase, table=True):
    """Procedure catalog entry."""
    __tablename__ = "procedures"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_procedures_duration_positive"),
        CheckConstraint("default_price >= 0", name="ck_procedures_price_non_negative"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)


class PatientBase(SQLModel):
    """Base patient model."""
    full_name: str
    phone: str
    email: Optional[str] = None
    notes: Optional[str] = None


class Patient(PatientBase, table=True):
    """Patient model, owned by one professional."""
    __tablename__ = "patients"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    professional_id: uuid.UUID = Field(foreign_key="profiles.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)


class AppointmentBase(SQLModel):
    """Base appointment model."""
    appointment_date: date = Field(index=True)
    appointment_time: time
    status: str = Field(default="scheduled", index=True)
    cancellation_reason: Optional[str] = None


class Appointment(AppointmentBase, table=True):
    """Appointment model.

    A slot (professional, date, time) holds at most one non-cancelled
    appointment; the partial unique index is the authoritative guard against
    two concurrent bookings.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'completed', 'cancelled')",
            name="ck_appointments_status",
        ),
        Index(
            "uq_appointments_active_slot",
            "professional_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    patient_id: uuid.UUID = Field(foreign_key="patients.id")
    procedure_id: uuid.UUID = Field(foreign_key="procedures.id")
    professional_id: uuid.UUID = Field(foreign_key="profiles.id", index=True)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)


class CashRegisterClosingBase(SQLModel):
    """Base cash register closing model."""
    closing_date: date = Field(index=True)
    total_amount: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    notes: Optional[str] = None
    is_finalized: bool = Field(default=False)
    finalized_at: Optional[datetime] = Field(default=None, sa_type=TIMESTAMP)


class CashRegisterClosing(CashRegisterClosingBase, table=True):
    """Daily cash register closing of one professional."""
    __tablename__ = "cash_register_closings"
    __table_args__ = (
        UniqueConstraint("professional_id", "closing_date", name="uq_cash_closings_professional_date"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    professional_id: uuid.UUID = Field(foreign_key="profiles.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)


class CashRegisterTransactionBase(SQLModel):
    """Base cash register transaction model."""
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    payment_method: str
    notes: Optional[str] = None


class CashRegisterTransaction(CashRegisterTransactionBase, table=True):
    """A single payment recorded in a closing."""
    __tablename__ = "cash_register_transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_cash_transactions_amount_non_negative"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    closing_id: uuid.UUID = Field(foreign_key="cash_register_closings.id", ondelete="CASCADE", index=True)
    appointment_id: Optional[uuid.UUID] = Field(default=None, foreign_key="appointments.id")
    created_at: datetime = Field(default_factory=utcnow, sa_type=TIMESTAMP)
