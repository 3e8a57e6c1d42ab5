"""
Appointments API endpoints with slot conflict control.
"""

import uuid
from datetime import date, time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, get_current_session
from belle.db.session import get_db_transaction
from belle.schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    SlotAvailabilityResponse,
)
from belle.services.scheduling_service import scheduling_service

router = APIRouter()


@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    day: date = Query(..., description="Reference day"),
    view: str = Query("day", pattern="^(day|week)$", description="Day or Sunday-to-Saturday week"),
    professional_id: Optional[uuid.UUID] = Query(None, description="Filter by professional"),
    status: Optional[str] = Query(None, description="Filter by status"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Agenda for a day or a week."""
    rows = await scheduling_service.list_appointments(
        db, session, day, view=view, professional_id=professional_id, status=status
    )
    return [AppointmentResponse(**row) for row in rows]


@router.get("/availability", response_model=SlotAvailabilityResponse)
async def check_availability(
    appointment_date: date = Query(...),
    appointment_time: time = Query(...),
    professional_id: Optional[uuid.UUID] = Query(None, description="Defaults to the caller"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Check a slot while the booking form is being filled in."""
    professional_id = professional_id or session.profile_id
    slot_time = appointment_time.replace(second=0, microsecond=0)
    available = await scheduling_service.check_slot(db, session, professional_id, appointment_date, slot_time)
    return SlotAvailabilityResponse(
        professional_id=professional_id,
        appointment_date=appointment_date,
        appointment_time=slot_time,
        available=available,
    )


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: AppointmentCreate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """
    Book an appointment.

    Returns 409 when the professional already holds a non-cancelled
    appointment in the slot, including when a concurrent booking wins.
    """
    appointment = await scheduling_service.create_appointment(
        db,
        session,
        patient_id=request.patient_id,
        procedure_id=request.procedure_id,
        appointment_date=request.appointment_date,
        appointment_time=request.appointment_time,
        professional_id=request.professional_id,
    )
    return AppointmentResponse.model_validate(appointment)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: uuid.UUID,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    appointment = await scheduling_service.get_appointment(db, session, appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/status", response_model=AppointmentResponse)
async def change_status(
    appointment_id: uuid.UUID,
    request: AppointmentStatusUpdate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Confirm, complete or cancel an appointment."""
    appointment = await scheduling_service.change_status(
        db, session, appointment_id, request.status, request.cancellation_reason
    )
    return AppointmentResponse.model_validate(appointment)
