"""Identity repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import RoleEnum
from app.modules.identity.models import User


class IdentityRepository:
    """DB operations for identity domain; also the store-backed authorization oracle."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def is_admin(self, user_id: UUID) -> bool:
        stmt = select(User.role).where(User.id == user_id)
        role = await self.session.scalar(stmt)
        return role == RoleEnum.ADMIN
