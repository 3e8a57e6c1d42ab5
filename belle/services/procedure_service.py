"""
Procedure catalog. Procedures are never deleted, only deactivated.
"""

import uuid
from decimal import Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.exceptions import ConstraintError, NotFoundError
from belle.core.logging import audit_logger
from belle.core.policy import Action, Entity, ensure_access, scope_statement
from belle.core.timeutils import utcnow
from belle.models import Procedure

CLEARABLE_FIELDS = frozenset()


class ProcedureService:

    async def list_procedures(self, db: AsyncSession, identity, include_inactive: bool = False) -> List[Procedure]:
        stmt = scope_statement(select(Procedure), Procedure, identity).order_by(Procedure.name)
        if not include_inactive:
            stmt = stmt.where(Procedure.is_active.is_(True))
        return list((await db.execute(stmt)).scalars().all())

    async def get_procedure(self, db: AsyncSession, identity, procedure_id: uuid.UUID) -> Procedure:
        stmt = scope_statement(select(Procedure).where(Procedure.id == procedure_id), Procedure, identity)
        procedure = (await db.execute(stmt)).scalar_one_or_none()
        if procedure is None:
            raise NotFoundError("Procedimento não encontrado.", procedure_id=procedure_id)
        return procedure

    async def create_procedure(
        self, db: AsyncSession, identity, name: str, duration_minutes: int, default_price: Decimal
    ) -> Procedure:
        ensure_access(identity, Entity.PROCEDURES, Action.CREATE)
        procedure = Procedure(
            name=name,
            duration_minutes=duration_minutes,
            default_price=Decimal(default_price),
            is_active=True,
            created_by=identity.profile_id,
        )
        db.add(procedure)
        await db.flush()
        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="create",
            entity="procedure",
            entity_id=str(procedure.id),
        )
        return procedure

    async def update_procedure(self, db: AsyncSession, identity, procedure_id: uuid.UUID, **changes) -> Procedure:
        procedure = await self.get_procedure(db, identity, procedure_id)
        ensure_access(identity, Entity.PROCEDURES, Action.UPDATE, procedure)
        for field, value in changes.items():
            if value is None and field not in CLEARABLE_FIELDS:
                raise ConstraintError(f"O campo {field} é obrigatório.", field=field)
            setattr(procedure, field, value)
        procedure.updated_at = utcnow()
        await db.flush()
        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="update",
            entity="procedure",
            entity_id=str(procedure.id),
            details={key: str(value) for key, value in changes.items()},
        )
        return procedure


procedure_service = ProcedureService()
