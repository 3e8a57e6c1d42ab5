"""
User management API endpoints.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, get_current_session, require_super_admin
from belle.db.session import get_db_transaction
from belle.schemas import ProfileCreate, ProfileResponse, ProfileUpdate
from belle.services.profile_service import profile_service

router = APIRouter()


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    active_only: bool = Query(False, description="Only active professionals"),
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """List professionals (used by agenda and closing filters)."""
    profiles = await profile_service.list_profiles(db, session, active_only=active_only)
    return [ProfileResponse.model_validate(p) for p in profiles]


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    request: ProfileCreate,
    session: SessionContext = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_transaction)
):
    profile = await profile_service.create_profile(
        db, session, request.email, request.password, request.full_name, request.role
    )
    return ProfileResponse.model_validate(profile)


@router.patch("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_id: uuid.UUID,
    request: ProfileUpdate,
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Update a profile; role and active flag are reserved to super admins."""
    profile = await profile_service.update_profile(
        db, session, profile_id, **request.model_dump(exclude_unset=True)
    )
    return ProfileResponse.model_validate(profile)


@router.post("/{profile_id}/toggle-active", response_model=ProfileResponse)
async def toggle_active(
    profile_id: uuid.UUID,
    session: SessionContext = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_transaction)
):
    profile = await profile_service.toggle_active(db, session, profile_id)
    return ProfileResponse.model_validate(profile)
