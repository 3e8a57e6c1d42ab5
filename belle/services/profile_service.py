"""
User management for super admins and self-service profile edits.
"""

import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from belle.core.exceptions import AuthError, ConstraintError, NotFoundError
from belle.core.logging import audit_logger
from belle.core.policy import Action, Entity, ensure_access
from belle.core.timeutils import utcnow
from belle.models import Profile
from belle.services.auth_service import auth_service


class ProfileService:

    async def list_profiles(self, db: AsyncSession, identity, active_only: bool = False) -> List[Profile]:
        ensure_access(identity, Entity.PROFILES, Action.READ)
        stmt = select(Profile).order_by(Profile.full_name)
        if active_only:
            stmt = stmt.where(Profile.is_active.is_(True))
        return list((await db.execute(stmt)).scalars().all())

    async def get_profile(self, db: AsyncSession, identity, profile_id: uuid.UUID) -> Profile:
        ensure_access(identity, Entity.PROFILES, Action.READ)
        profile = await db.get(Profile, profile_id)
        if profile is None:
            raise NotFoundError("Usuário não encontrado.", profile_id=profile_id)
        return profile

    async def create_profile(
        self, db: AsyncSession, identity, email: str, password: str, full_name: str, role: str
    ) -> Profile:
        ensure_access(identity, Entity.PROFILES, Action.CREATE)
        try:
            return await auth_service.create_profile(db, email, password, full_name, role=role)
        except AuthError as e:
            raise ConstraintError(e.message, **e.extra)

    async def update_profile(
        self,
        db: AsyncSession,
        identity,
        profile_id: uuid.UUID,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Profile:
        profile = await self.get_profile(db, identity, profile_id)
        ensure_access(identity, Entity.PROFILES, Action.UPDATE, profile)
        if role is not None or is_active is not None:
            ensure_access(identity, Entity.PROFILES, Action.ADMINISTER, profile)

        if email is not None and email.lower() != profile.email:
            taken = await db.execute(
                select(Profile.id).where(func.lower(Profile.email) == email.lower(), Profile.id != profile.id)
            )
            if taken.first() is not None:
                raise ConstraintError("E-mail já cadastrado no sistema.", email=email)
            profile.email = email.lower()
        if full_name is not None:
            profile.full_name = full_name
        if role is not None:
            profile.role = role
        if is_active is not None:
            profile.is_active = is_active
        profile.updated_at = utcnow()
        await db.flush()

        audit_logger.log_user_action(
            user_id=str(identity.profile_id),
            action="update",
            entity="profile",
            entity_id=str(profile.id),
        )
        return profile

    async def toggle_active(self, db: AsyncSession, identity, profile_id: uuid.UUID) -> Profile:
        profile = await self.get_profile(db, identity, profile_id)
        ensure_access(identity, Entity.PROFILES, Action.ADMINISTER, profile)
        if profile.id == identity.profile_id:
            raise ConstraintError("Você não pode desativar o seu próprio usuário.")
        return await self.update_profile(db, identity, profile_id, is_active=not profile.is_active)


profile_service = ProfileService()
