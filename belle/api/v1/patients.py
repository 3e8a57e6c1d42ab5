"""
Patients API endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, get_current_session
from belle.db.session import get_db_transaction
from belle.schemas import PatientCreate, PatientResponse, PatientUpdate
from belle.services.patient_service import patient_service

router = APIRouter()


@router.get("", response_model=List[PatientResponse])
async def list_patients(
    search: Optional[str] = Query(None, description="Search by name, phone or e-mail"),
    professional_id: Optional[uuid.UUID] = Query(None, description="Filter by professional"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """List the patients visible to the caller."""
    patients = await patient_service.list_patients(db, session, search=search, professional_id=professional_id)
    return [PatientResponse.model_validate(p) for p in patients]


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    request: PatientCreate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    patient = await patient_service.create_patient(db, session, **request.model_dump())
    return PatientResponse.model_validate(patient)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    patient = await patient_service.get_patient(db, session, patient_id)
    return PatientResponse.model_validate(patient)


@router.patch("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: uuid.UUID,
    request: PatientUpdate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    patient = await patient_service.update_patient(
        db, session, patient_id, **request.model_dump(exclude_unset=True)
    )
    return PatientResponse.model_validate(patient)
