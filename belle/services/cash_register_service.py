"""
Cash register service: daily closings and their transactions.

A closing is open until finalized and immutable afterwards. Every mutation
of a closing locks its row first and then recomputes ``total_amount`` from
the full transaction set, so concurrent changes cannot lose an update.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.exceptions import (
    ClosingFinalizedError,
    ConstraintError,
    DuplicateClosingError,
    NotFoundError,
)
from belle.core.logging import audit_logger
from belle.core.policy import Action, Entity, ensure_access, scope_statement
from belle.core.timeutils import clinic_today, utcnow
from belle.models import (
    Appointment,
    AppointmentStatus,
    CashRegisterClosing,
    CashRegisterTransaction,
    Patient,
    PaymentMethod,
    Procedure,
    Profile,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
FINALIZED_MESSAGE = "Este fechamento já foi finalizado e não pode ser alterado."


class CashRegisterService:
    """Lifecycle of daily cash register closings."""

    async def _load_closing(
        self, db: AsyncSession, identity, closing_id: uuid.UUID, for_update: bool = False
    ) -> CashRegisterClosing:
        stmt = select(CashRegisterClosing).where(CashRegisterClosing.id == closing_id)
        stmt = scope_statement(stmt, CashRegisterClosing, identity)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        closing = (await db.execute(stmt)).scalar_one_or_none()
        if closing is None:
            raise NotFoundError("Fechamento não encontrado.", closing_id=closing_id)
        return closing

    @staticmethod
    def _ensure_open(closing: CashRegisterClosing) -> None:
        if closing.is_finalized:
            raise ClosingFinalizedError(FINALIZED_MESSAGE, closing_id=closing.id)

    async def open_closing(
        self, db: AsyncSession, identity, closing_date: Optional[date] = None, notes: Optional[str] = None
    ) -> CashRegisterClosing:
        """Open the caller's closing for ``closing_date`` (default: today, clinic time)."""
        closing = CashRegisterClosing(
            professional_id=identity.profile_id,
            closing_date=closing_date or clinic_today(),
            total_amount=Decimal("0.00"),
            notes=notes,
            is_finalized=False,
        )
        ensure_access(identity, Entity.CLOSINGS, Action.CREATE, closing)

        existing = await self._find_closing(db, closing.professional_id, closing.closing_date)
        if existing is not None:
            raise DuplicateClosingError(
                "Já existe um fechamento de caixa para esta data.",
                existing_closing_id=existing.id,
            )

        try:
            async with db.begin_nested():
                db.add(closing)
        except IntegrityError:
            # Concurrent open for the same professional/date
            logger.warning("Duplicate closing insert for %s on %s", closing.professional_id, closing.closing_date)
            existing = await self._find_closing(db, closing.professional_id, closing.closing_date)
            raise DuplicateClosingError(
                "Já existe um fechamento de caixa para esta data.",
                existing_closing_id=existing.id if existing else None,
            )

        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="create",
            entity="cash_register_closing",
            entity_id=str(closing.id),
            details={"closing_date": closing.closing_date.isoformat()},
        )
        return closing

    async def _find_closing(
        self, db: AsyncSession, professional_id: uuid.UUID, closing_date: date
    ) -> Optional[CashRegisterClosing]:
        result = await db.execute(
            select(CashRegisterClosing).where(
                CashRegisterClosing.professional_id == professional_id,
                CashRegisterClosing.closing_date == closing_date,
            )
        )
        return result.scalar_one_or_none()

    async def recompute_total(self, db: AsyncSession, closing: CashRegisterClosing) -> Decimal:
        """Rewrite ``total_amount`` as the exact sum of the closing's transactions."""
        await db.flush()
        result = await db.execute(
            select(CashRegisterTransaction.amount).where(CashRegisterTransaction.closing_id == closing.id)
        )
        total = sum((Decimal(amount) for amount in result.scalars().all()), Decimal("0"))
        closing.total_amount = total.quantize(CENTS)
        closing.updated_at = utcnow()
        await db.flush()
        return closing.total_amount

    async def add_transaction(
        self,
        db: AsyncSession,
        identity,
        closing_id: uuid.UUID,
        amount: Decimal,
        payment_method=PaymentMethod.CASH,
        appointment_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> CashRegisterTransaction:
        closing = await self._load_closing(db, identity, closing_id, for_update=True)
        self._ensure_open(closing)
        ensure_access(identity, Entity.TRANSACTIONS, Action.CREATE, closing)

        amount = Decimal(amount)
        if amount < 0:
            raise ConstraintError("O valor da transação não pode ser negativo.", amount=amount)

        method = payment_method.value if isinstance(payment_method, PaymentMethod) else payment_method
        if method not in {m.value for m in PaymentMethod}:
            raise ConstraintError("Forma de pagamento inválida.", payment_method=method)

        if appointment_id is not None:
            appointment = await db.get(Appointment, appointment_id)
            if appointment is None or appointment.professional_id != closing.professional_id:
                raise ConstraintError("Agendamento não encontrado.", appointment_id=appointment_id)

        transaction = CashRegisterTransaction(
            closing_id=closing.id,
            appointment_id=appointment_id,
            amount=amount.quantize(CENTS),
            payment_method=method,
            notes=notes,
        )
        db.add(transaction)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConstraintError(str(e.orig))

        total = await self.recompute_total(db, closing)
        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="create",
            entity="cash_register_transaction",
            entity_id=str(transaction.id),
            details={"closing_id": str(closing.id), "amount": str(transaction.amount), "total": str(total)},
        )
        return transaction

    async def delete_transaction(self, db: AsyncSession, identity, transaction_id: uuid.UUID) -> CashRegisterClosing:
        stmt = scope_statement(
            select(CashRegisterTransaction).where(CashRegisterTransaction.id == transaction_id),
            CashRegisterTransaction,
            identity,
        )
        transaction = (await db.execute(stmt)).scalar_one_or_none()
        if transaction is None:
            raise NotFoundError("Transação não encontrada.", transaction_id=transaction_id)

        closing = await self._load_closing(db, identity, transaction.closing_id, for_update=True)
        self._ensure_open(closing)
        ensure_access(identity, Entity.TRANSACTIONS, Action.DELETE, closing)

        await db.delete(transaction)
        total = await self.recompute_total(db, closing)
        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="delete",
            entity="cash_register_transaction",
            entity_id=str(transaction_id),
            details={"closing_id": str(closing.id), "total": str(total)},
        )
        return closing

    async def finalize_closing(self, db: AsyncSession, identity, closing_id: uuid.UUID) -> CashRegisterClosing:
        closing = await self._load_closing(db, identity, closing_id, for_update=True)
        self._ensure_open(closing)
        ensure_access(identity, Entity.CLOSINGS, Action.UPDATE, closing)

        await self.recompute_total(db, closing)
        closing.is_finalized = True
        closing.finalized_at = utcnow()
        await db.flush()

        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="finalize",
            entity="cash_register_closing",
            entity_id=str(closing.id),
            details={"total_amount": str(closing.total_amount)},
        )
        return closing

    async def update_notes(
        self, db: AsyncSession, identity, closing_id: uuid.UUID, notes: Optional[str]
    ) -> CashRegisterClosing:
        closing = await self._load_closing(db, identity, closing_id, for_update=True)
        self._ensure_open(closing)
        ensure_access(identity, Entity.CLOSINGS, Action.UPDATE, closing)

        closing.notes = notes
        closing.updated_at = utcnow()
        await db.flush()
        return closing

    async def get_closing(self, db: AsyncSession, identity, closing_id: uuid.UUID) -> CashRegisterClosing:
        return await self._load_closing(db, identity, closing_id)

    async def list_closings(
        self,
        db: AsyncSession,
        identity,
        professional_id: Optional[uuid.UUID] = None,
        closing_date: Optional[date] = None,
    ) -> List[dict]:
        stmt = (
            select(CashRegisterClosing, Profile.full_name)
            .join(Profile, Profile.id == CashRegisterClosing.professional_id)
            .order_by(CashRegisterClosing.closing_date.desc())
        )
        stmt = scope_statement(stmt, CashRegisterClosing, identity)
        if professional_id:
            stmt = stmt.where(CashRegisterClosing.professional_id == professional_id)
        if closing_date:
            stmt = stmt.where(CashRegisterClosing.closing_date == closing_date)

        result = await db.execute(stmt)
        closings = []
        for closing, professional_name in result.all():
            row = closing.model_dump()
            row["professional_name"] = professional_name
            closings.append(row)
        return closings

    async def list_transactions(
        self, db: AsyncSession, identity, closing_id: uuid.UUID
    ) -> List[CashRegisterTransaction]:
        closing = await self._load_closing(db, identity, closing_id)
        result = await db.execute(
            select(CashRegisterTransaction)
            .where(CashRegisterTransaction.closing_id == closing.id)
            .order_by(CashRegisterTransaction.created_at)
        )
        return list(result.scalars().all())

    async def billable_appointments(self, db: AsyncSession, identity, closing_id: uuid.UUID) -> List[dict]:
        """Completed appointments of the closing's professional on the closing date."""
        closing = await self._load_closing(db, identity, closing_id)
        result = await db.execute(
            select(Appointment.id, Appointment.appointment_time, Patient.full_name, Procedure.name, Procedure.default_price)
            .join(Patient, Patient.id == Appointment.patient_id)
            .join(Procedure, Procedure.id == Appointment.procedure_id)
            .where(
                Appointment.professional_id == closing.professional_id,
                Appointment.appointment_date == closing.closing_date,
                Appointment.status == AppointmentStatus.COMPLETED.value,
            )
            .order_by(Appointment.appointment_time)
        )
        return [
            {
                "appointment_id": appointment_id,
                "appointment_time": appointment_time,
                "patient_name": patient_name,
                "procedure_name": procedure_name,
                "default_price": default_price,
            }
            for appointment_id, appointment_time, patient_name, procedure_name, default_price in result.all()
        ]


cash_register_service = CashRegisterService()
