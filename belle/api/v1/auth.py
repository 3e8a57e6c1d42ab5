"""
Authentication API endpoints.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, get_current_session
from belle.core.logging import audit_logger
from belle.db.session import get_db_transaction
from belle.schemas import (
    LoginRequest,
    ProfileResponse,
    RefreshRequest,
    SessionResponse,
    SignUpRequest,
    TokenResponse,
)
from belle.services.auth_service import auth_service

router = APIRouter()


@router.post("/signup", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignUpRequest,
    db: AsyncSession = Depends(get_db_transaction)
):
    """
    Self sign-up.

    The very first profile of the system becomes super admin; everyone else
    signs up as a regular user.
    """
    profile = await auth_service.sign_up(db, request.email, request.password, request.full_name)
    return ProfileResponse.model_validate(profile)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db_transaction)
):
    """Authenticate and open a new session."""
    tokens, session = await auth_service.sign_in(db, request.email, request.password)
    audit_logger.log_security_event(
        "login_success",
        user_id=str(session.profile_id),
        ip_address=http_request.client.host if http_request.client else None,
    )
    return TokenResponse(**tokens)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db_transaction)
):
    """Issue a fresh token pair for a live session."""
    tokens = await auth_service.refresh(db, request.refresh_token)
    return TokenResponse(**tokens)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_transaction)
):
    """Tear down the current session; its tokens stop working."""
    await auth_service.sign_out(db, session)


@router.get("/me", response_model=SessionResponse)
async def me(session: SessionContext = Depends(get_current_session)):
    return SessionResponse(
        profile_id=session.profile_id,
        email=session.email,
        full_name=session.full_name,
        role=session.role,
        session_id=session.session_id,
        is_super_admin=session.is_super_admin,
    )
