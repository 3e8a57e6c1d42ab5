"""
Authentication dependencies for FastAPI.

Each request resolves its bearer token into an explicit ``SessionContext``
that routers hand to the services; nothing about the caller is kept in
module state.
"""

import uuid
from dataclasses import dataclass
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.exceptions import AuthError, PermissionDeniedError
from belle.core.logging import bind_caller
from belle.core.security import ACCESS, security
from belle.db.session import get_db_transaction
from belle.models import LoginSession, Profile, UserRole


# Security scheme
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """Identity of the caller for the duration of one request."""

    profile_id: uuid.UUID
    email: str
    full_name: str
    role: str
    session_id: uuid.UUID

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value

    @classmethod
    def from_profile(cls, profile: Profile, session_id: uuid.UUID) -> "SessionContext":
        return cls(
            profile_id=profile.id,
            email=profile.email,
            full_name=profile.full_name,
            role=profile.role,
            session_id=session_id,
        )


async def resolve_session(db: AsyncSession, token: str, token_type: str = ACCESS) -> SessionContext:
    """Turn a token into a live session, or raise AuthError."""
    payload = security.verify_token(token, token_type)
    if not payload:
        raise AuthError("Invalid authentication credentials")

    try:
        profile_id = uuid.UUID(payload["sub"])
        session_id = uuid.UUID(payload["sid"])
    except (KeyError, ValueError):
        raise AuthError("Invalid token payload")

    login_session = await db.get(LoginSession, session_id)
    if login_session is None or login_session.revoked_at is not None:
        raise AuthError("Session expired or signed out")
    if login_session.profile_id != profile_id:
        raise AuthError("Invalid token payload")

    profile = await db.get(Profile, profile_id)
    if profile is None or not profile.is_active:
        raise AuthError("User not found or inactive")

    return SessionContext.from_profile(profile, session_id)


async def get_current_session(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    db: AsyncSession = Depends(get_db_transaction)
) -> SessionContext:
    """Get the session of the authenticated caller."""
    if credentials is None:
        raise AuthError("Not authenticated")
    session = await resolve_session(db, credentials.credentials)
    bind_caller(session.profile_id, session.role)
    return session


async def require_super_admin(
    session: SessionContext = Depends(get_current_session)
) -> SessionContext:
    if not session.is_super_admin:
        raise PermissionDeniedError("Super admin access required")
    return session
