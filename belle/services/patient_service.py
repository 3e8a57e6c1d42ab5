"""
Patient records, each owned by one professional.
"""

import uuid
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.exceptions import ConstraintError, NotFoundError
from belle.core.logging import audit_logger
from belle.core.policy import Action, Entity, ensure_access, scope_statement
from belle.core.timeutils import utcnow
from belle.models import Patient, Profile

# Optional contact fields a PATCH may clear with an explicit null
CLEARABLE_FIELDS = frozenset({"email", "notes"})


class PatientService:

    async def list_patients(
        self,
        db: AsyncSession,
        identity,
        search: Optional[str] = None,
        professional_id: Optional[uuid.UUID] = None,
    ) -> List[Patient]:
        stmt = scope_statement(select(Patient), Patient, identity).order_by(Patient.full_name)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Patient.full_name).like(pattern),
                    Patient.phone.like(f"%{search}%"),
                    func.lower(Patient.email).like(pattern),
                )
            )
        if professional_id:
            stmt = stmt.where(Patient.professional_id == professional_id)
        return list((await db.execute(stmt)).scalars().all())

    async def get_patient(self, db: AsyncSession, identity, patient_id: uuid.UUID) -> Patient:
        stmt = scope_statement(select(Patient).where(Patient.id == patient_id), Patient, identity)
        patient = (await db.execute(stmt)).scalar_one_or_none()
        if patient is None:
            raise NotFoundError("Paciente não encontrado.", patient_id=patient_id)
        return patient

    async def create_patient(
        self,
        db: AsyncSession,
        identity,
        full_name: str,
        phone: str,
        email: Optional[str] = None,
        notes: Optional[str] = None,
        professional_id: Optional[uuid.UUID] = None,
    ) -> Patient:
        patient = Patient(
            full_name=full_name,
            phone=phone,
            email=email,
            notes=notes,
            professional_id=professional_id or identity.profile_id,
        )
        ensure_access(identity, Entity.PATIENTS, Action.CREATE, patient)
        if await db.get(Profile, patient.professional_id) is None:
            raise ConstraintError("Profissional não encontrado.", professional_id=patient.professional_id)

        db.add(patient)
        await db.flush()
        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="create",
            entity="patient",
            entity_id=str(patient.id),
        )
        return patient

    async def update_patient(self, db: AsyncSession, identity, patient_id: uuid.UUID, **changes) -> Patient:
        patient = await self.get_patient(db, identity, patient_id)
        ensure_access(identity, Entity.PATIENTS, Action.UPDATE, patient)
        for field, value in changes.items():
            if value is None and field not in CLEARABLE_FIELDS:
                raise ConstraintError(f"O campo {field} é obrigatório.", field=field)
            setattr(patient, field, value)
        patient.updated_at = utcnow()
        await db.flush()
        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="update",
            entity="patient",
            entity_id=str(patient.id),
        )
        return patient


patient_service = PatientService()
