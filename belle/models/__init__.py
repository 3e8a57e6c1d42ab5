"""
Core database models for the Miss Belle clinic.
"""

from enum import Enum

from belle.models.database import (
    Profile,
    LoginSession,
    Procedure,
    Patient,
    Appointment,
    CashRegisterClosing,
    CashRegisterTransaction,
)


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    USER = "user"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "Dinheiro"
    CREDIT_CARD = "Cartão de Crédito"
    DEBIT_CARD = "Cartão de Débito"
    PIX = "PIX"


__all__ = [
    "Profile",
    "LoginSession",
    "Procedure",
    "Patient",
    "Appointment",
    "CashRegisterClosing",
    "CashRegisterTransaction",
    "UserRole",
    "AppointmentStatus",
    "PaymentMethod",
]
