"""
Dashboard API endpoints for statistics and overview data.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, get_current_session
from belle.db.session import get_db_transaction
from belle.schemas import DashboardResponse
from belle.services.dashboard_service import dashboard_service

router = APIRouter()


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    period: str = Query("day", pattern="^(day|week|month)$"),
    reference_date: Optional[date] = Query(None, description="Defaults to today"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Statistics for the caller's scope: own data, or the whole clinic for super admins."""
    data = await dashboard_service.get_dashboard(db, session, period=period, reference_date=reference_date)
    return DashboardResponse(**data)
