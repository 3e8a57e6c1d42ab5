"""
Scheduling service: appointment booking, slot conflicts and status lifecycle.

A professional holds at most one non-cancelled appointment per slot
(date + time). The service pre-checks the slot so the caller gets a friendly
error, but the partial unique index ``uq_appointments_active_slot`` is what
decides between two concurrent bookings.
"""

import logging
import uuid
from datetime import date, time
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.exceptions import (
    ConflictError,
    ConstraintError,
    InvalidStatusTransitionError,
    NotFoundError,
)
from belle.core.logging import audit_logger
from belle.core.policy import Action, Entity, ensure_access, scope_statement
from belle.core.timeutils import utcnow, week_bounds
from belle.models import Appointment, AppointmentStatus, Patient, Procedure, Profile
from belle.services.patient_service import patient_service

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "Já existe um agendamento para este horário. Escolha outro horário."

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    AppointmentStatus.SCHEDULED.value: frozenset(
        {AppointmentStatus.CONFIRMED.value, AppointmentStatus.CANCELLED.value}
    ),
    AppointmentStatus.CONFIRMED.value: frozenset(
        {AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value}
    ),
    AppointmentStatus.COMPLETED.value: frozenset(),
    AppointmentStatus.CANCELLED.value: frozenset(),
}


def _status_value(status) -> str:
    return status.value if isinstance(status, AppointmentStatus) else str(status)


class SchedulingService:
    """Business rules of the clinic agenda."""

    async def find_conflict(
        self,
        db: AsyncSession,
        professional_id: uuid.UUID,
        appointment_date: date,
        appointment_time: time,
    ) -> Optional[Appointment]:
        """Return the non-cancelled appointment occupying the slot, if any."""
        result = await db.execute(
            select(Appointment).where(
                Appointment.professional_id == professional_id,
                Appointment.appointment_date == appointment_date,
                Appointment.appointment_time == appointment_time,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
        )
        return result.scalars().first()

    async def check_slot(
        self,
        db: AsyncSession,
        identity,
        professional_id: uuid.UUID,
        appointment_date: date,
        appointment_time: time,
    ) -> bool:
        """Pre-submission availability check; True when the slot is free."""
        ensure_access(identity, Entity.APPOINTMENTS, Action.READ, _SlotOwner(professional_id))
        conflict = await self.find_conflict(db, professional_id, appointment_date, appointment_time)
        return conflict is None

    async def create_appointment(
        self,
        db: AsyncSession,
        identity,
        patient_id: uuid.UUID,
        procedure_id: uuid.UUID,
        appointment_date: date,
        appointment_time: time,
        professional_id: Optional[uuid.UUID] = None,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient_id,
            procedure_id=procedure_id,
            professional_id=professional_id or identity.profile_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time.replace(second=0, microsecond=0),
            status=AppointmentStatus.SCHEDULED.value,
            created_by=identity.profile_id,
        )
        ensure_access(identity, Entity.APPOINTMENTS, Action.CREATE, appointment)

        professional = await db.get(Profile, appointment.professional_id)
        if professional is None:
            raise ConstraintError("Profissional não encontrado.", professional_id=appointment.professional_id)

        patient = await patient_service.get_patient(db, identity, patient_id)
        if patient.professional_id != appointment.professional_id:
            raise ConstraintError(
                "O paciente não pertence a este profissional.",
                patient_id=patient_id,
                professional_id=appointment.professional_id,
            )

        procedure = await db.get(Procedure, procedure_id)
        if procedure is None or not procedure.is_active:
            raise ConstraintError("Procedimento não encontrado ou inativo.", procedure_id=procedure_id)

        existing = await self.find_conflict(
            db, appointment.professional_id, appointment.appointment_date, appointment.appointment_time
        )
        if existing is not None:
            raise ConflictError(SLOT_TAKEN_MESSAGE, existing_appointment_id=existing.id)

        try:
            async with db.begin_nested():
                db.add(appointment)
        except IntegrityError as e:
            # Lost the race for the slot to a concurrent booking
            logger.warning("Slot insert rejected by storage: %s", e.orig)
            existing = await self.find_conflict(
                db, appointment.professional_id, appointment.appointment_date, appointment.appointment_time
            )
            if existing is None and "uq_appointments_active_slot" not in str(e.orig):
                raise ConstraintError(str(e.orig))
            raise ConflictError(SLOT_TAKEN_MESSAGE, existing_appointment_id=existing.id if existing else None)

        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="create",
            entity="appointment",
            entity_id=str(appointment.id),
            details={
                "professional_id": str(appointment.professional_id),
                "date": appointment.appointment_date.isoformat(),
                "time": appointment.appointment_time.isoformat(),
            },
        )
        return appointment

    async def get_appointment(self, db: AsyncSession, identity, appointment_id: uuid.UUID) -> Appointment:
        stmt = scope_statement(
            select(Appointment).where(Appointment.id == appointment_id), Appointment, identity
        )
        appointment = (await db.execute(stmt)).scalar_one_or_none()
        if appointment is None:
            raise NotFoundError("Agendamento não encontrado.", appointment_id=appointment_id)
        return appointment

    async def change_status(
        self,
        db: AsyncSession,
        identity,
        appointment_id: uuid.UUID,
        new_status,
        cancellation_reason: Optional[str] = None,
    ) -> Appointment:
        appointment = await self.get_appointment(db, identity, appointment_id)
        ensure_access(identity, Entity.APPOINTMENTS, Action.UPDATE, appointment)

        target = _status_value(new_status)
        if target not in ALLOWED_TRANSITIONS.get(appointment.status, frozenset()):
            raise InvalidStatusTransitionError(
                f"Cannot move appointment from {appointment.status} to {target}",
                current_status=appointment.status,
                requested_status=target,
            )

        previous = appointment.status
        appointment.status = target
        if target == AppointmentStatus.CANCELLED.value:
            appointment.cancellation_reason = cancellation_reason
        appointment.updated_at = utcnow()
        await db.flush()

        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="status_change",
            entity="appointment",
            entity_id=str(appointment.id),
            details={"from": previous, "to": target},
        )
        return appointment

    async def list_appointments(
        self,
        db: AsyncSession,
        identity,
        day: date,
        view: str = "day",
        professional_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> List[dict]:
        """Agenda rows for a day or a Sunday-to-Saturday week, with display names."""
        if view == "week":
            start, end = week_bounds(day)
        elif view == "day":
            start, end = day, day
        else:
            raise ValueError(f"Unknown agenda view: {view}")

        stmt = (
            select(Appointment, Patient.full_name, Procedure.name, Procedure.duration_minutes, Profile.full_name)
            .join(Patient, Patient.id == Appointment.patient_id)
            .join(Procedure, Procedure.id == Appointment.procedure_id)
            .join(Profile, Profile.id == Appointment.professional_id)
            .where(Appointment.appointment_date >= start, Appointment.appointment_date <= end)
            .order_by(Appointment.appointment_date, Appointment.appointment_time)
        )
        stmt = scope_statement(stmt, Appointment, identity)
        if professional_id:
            stmt = stmt.where(Appointment.professional_id == professional_id)
        if status:
            stmt = stmt.where(Appointment.status == status)

        result = await db.execute(stmt)
        rows = []
        for appointment, patient_name, procedure_name, duration, professional_name in result.all():
            rows.append(
                self.to_row(
                    appointment,
                    patient_name=patient_name,
                    procedure_name=procedure_name,
                    procedure_duration_minutes=duration,
                    professional_name=professional_name,
                )
            )
        return rows

    @staticmethod
    def to_row(appointment: Appointment, **names) -> dict:
        row = appointment.model_dump()
        row.update(names)
        return row


class _SlotOwner:
    """Stand-in row so a slot query can be checked against the appointment policy."""

    def __init__(self, professional_id: uuid.UUID):
        self.professional_id = professional_id


scheduling_service = SchedulingService()
