"""
Authentication provider: sign-up, sign-in, refresh and sign-out.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.auth import SessionContext, resolve_session
from belle.core.exceptions import AuthError
from belle.core.logging import audit_logger
from belle.core.security import REFRESH, security
from belle.core.timeutils import utcnow
from belle.models import LoginSession, Profile, UserRole

logger = logging.getLogger(__name__)

SessionListener = Callable[[str, SessionContext], None]

SIGNED_IN = "signed_in"
SIGNED_OUT = "signed_out"
TOKEN_REFRESHED = "token_refreshed"


class SessionEvents:
    """Subscribable "session changed" notifications."""

    def __init__(self):
        self._listeners: List[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns the function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, session: SessionContext) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                # Listener failures are non-critical for the auth flow
                logger.error("Session listener failed for %s", event, exc_info=True)


session_events = SessionEvents()


def audit_session_change(event: str, session: SessionContext) -> None:
    audit_logger.log_session_event(event, str(session.profile_id), str(session.session_id))


class AuthService:
    """Issues and tears down sessions bound to a profile."""

    def __init__(self, events: SessionEvents = session_events):
        self.events = events

    @staticmethod
    def _token_pair(session: SessionContext) -> Dict[str, str]:
        return security.create_token_pair(session.profile_id, session.session_id, session.email, session.role)

    async def create_profile(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        full_name: str,
        role: Optional[str] = None,
    ) -> Profile:
        """Create a profile; without an explicit role the first one becomes super admin."""
        existing = await db.execute(select(Profile.id).where(func.lower(Profile.email) == email.lower()))
        if existing.first() is not None:
            raise AuthError("E-mail já cadastrado no sistema.", email=email)

        if role is None:
            count = (await db.execute(select(func.count(Profile.id)))).scalar_one()
            role = UserRole.SUPER_ADMIN.value if count == 0 else UserRole.USER.value

        profile = Profile(
            email=email.lower(),
            full_name=full_name,
            role=role,
            is_active=True,
            password_hash=security.hash_password(password),
        )
        db.add(profile)
        try:
            await db.flush()
        except IntegrityError:
            raise AuthError("E-mail já cadastrado no sistema.", email=email)

        audit_logger.log_user_action(
            user_id=str(profile.id),
            action="profile_created",
            entity="profile",
            entity_id=str(profile.id),
            details={"role": profile.role},
        )
        return profile

    async def sign_up(self, db: AsyncSession, email: str, password: str, full_name: str) -> Profile:
        return await self.create_profile(db, email, password, full_name)

    async def sign_in(self, db: AsyncSession, email: str, password: str) -> Tuple[Dict[str, str], SessionContext]:
        result = await db.execute(select(Profile).where(func.lower(Profile.email) == email.lower()))
        profile = result.scalar_one_or_none()

        if not profile or not profile.is_active or not security.verify_password(password, profile.password_hash):
            audit_logger.log_security_event("login_failed", details={"email": email})
            raise AuthError("E-mail ou senha incorretos.")

        profile.last_login = utcnow()
        login_session = LoginSession(profile_id=profile.id)
        db.add(login_session)
        await db.flush()

        session = SessionContext.from_profile(profile, login_session.id)
        self.events.emit(SIGNED_IN, session)
        return self._token_pair(session), session

    async def refresh(self, db: AsyncSession, refresh_token: str) -> Dict[str, str]:
        session = await resolve_session(db, refresh_token, REFRESH)
        self.events.emit(TOKEN_REFRESHED, session)
        return self._token_pair(session)

    async def sign_out(self, db: AsyncSession, session: SessionContext) -> None:
        login_session = await db.get(LoginSession, session.session_id)
        if login_session is None or login_session.revoked_at is not None:
            raise AuthError("Session expired or signed out")
        login_session.revoked_at = utcnow()
        await db.flush()
        self.events.emit(SIGNED_OUT, session)


auth_service = AuthService()
