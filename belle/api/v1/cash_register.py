"""
Cash register API endpoints: daily closings and their transactions.
"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, get_current_session
from belle.db.session import get_db_transaction
from belle.schemas import (
    BillableAppointment,
    ClosingCreate,
    ClosingResponse,
    ClosingUpdate,
    TransactionCreate,
    TransactionResponse,
)
from belle.services.cash_register_service import cash_register_service

router = APIRouter()


@router.get("/closings", response_model=List[ClosingResponse])
async def list_closings(
    professional_id: Optional[uuid.UUID] = Query(None, description="Filter by professional"),
    closing_date: Optional[date] = Query(None, description="Filter by date"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    rows = await cash_register_service.list_closings(
        db, session, professional_id=professional_id, closing_date=closing_date
    )
    return [ClosingResponse(**row) for row in rows]


@router.post("/closings", response_model=ClosingResponse, status_code=status.HTTP_201_CREATED)
async def open_closing(
    request: ClosingCreate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Open the caller's closing for a day; 409 when it already exists."""
    closing = await cash_register_service.open_closing(db, session, request.closing_date, request.notes)
    return ClosingResponse.model_validate(closing)


@router.get("/closings/{closing_id}", response_model=ClosingResponse)
async def get_closing(
    closing_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    closing = await cash_register_service.get_closing(db, session, closing_id)
    return ClosingResponse.model_validate(closing)


@router.patch("/closings/{closing_id}", response_model=ClosingResponse)
async def update_closing(
    closing_id: uuid.UUID,
    request: ClosingUpdate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    closing = await cash_register_service.update_notes(db, session, closing_id, request.notes)
    return ClosingResponse.model_validate(closing)


@router.post("/closings/{closing_id}/finalize", response_model=ClosingResponse)
async def finalize_closing(
    closing_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Finalize a closing. Irreversible."""
    closing = await cash_register_service.finalize_closing(db, session, closing_id)
    return ClosingResponse.model_validate(closing)


@router.get("/closings/{closing_id}/transactions", response_model=List[TransactionResponse])
async def list_transactions(
    closing_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    transactions = await cash_register_service.list_transactions(db, session, closing_id)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.post(
    "/closings/{closing_id}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_transaction(
    closing_id: uuid.UUID,
    request: TransactionCreate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Record a payment; the closing total is recomputed."""
    transaction = await cash_register_service.add_transaction(
        db,
        session,
        closing_id,
        amount=request.amount,
        payment_method=request.payment_method,
        appointment_id=request.appointment_id,
        notes=request.notes,
    )
    return TransactionResponse.model_validate(transaction)


@router.delete("/transactions/{transaction_id}", response_model=ClosingResponse)
async def delete_transaction(
    transaction_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Remove a payment and return the closing with its new total."""
    closing = await cash_register_service.delete_transaction(db, session, transaction_id)
    return ClosingResponse.model_validate(closing)


@router.get("/closings/{closing_id}/billable-appointments", response_model=List[BillableAppointment])
async def billable_appointments(
    closing_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    rows = await cash_register_service.billable_appointments(db, session, closing_id)
    return [BillableAppointment(**row) for row in rows]
