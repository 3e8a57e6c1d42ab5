"""
Procedure catalog API endpoints.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, get_current_session
from belle.db.session import get_db_transaction
from belle.schemas import ProcedureCreate, ProcedureResponse, ProcedureUpdate
from belle.services.procedure_service import procedure_service

router = APIRouter()


@router.get("", response_model=List[ProcedureResponse])
async def list_procedures(
    include_inactive: bool = Query(False, description="Super admins only"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    procedures = await procedure_service.list_procedures(db, session, include_inactive=include_inactive)
    return [ProcedureResponse.model_validate(p) for p in procedures]


@router.post("", response_model=ProcedureResponse, status_code=status.HTTP_201_CREATED)
async def create_procedure(
    request: ProcedureCreate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    procedure = await procedure_service.create_procedure(
        db, session, request.name, request.duration_minutes, request.default_price
    )
    return ProcedureResponse.model_validate(procedure)


@router.patch("/{procedure_id}", response_model=ProcedureResponse)
async def update_procedure(
    procedure_id: uuid.UUID,
    request: ProcedureUpdate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Edit or deactivate a procedure."""
    procedure = await procedure_service.update_procedure(
        db, session, procedure_id, **request.model_dump(exclude_unset=True)
    )
    return ProcedureResponse.model_validate(procedure)
