"""Caller identity and authorization dependencies."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.capabilities import AuthorizationOracle
from app.core.database import get_db_session
from app.core.security import bearer_scheme, subject_from_token
from app.modules.identity.repository import IdentityRepository
from app.shared.exceptions import AuthException, ForbiddenException

logger = logging.getLogger(__name__)


class IdentityService:
    """Authorization checks backed by the store's role predicate."""

    def __init__(self, oracle: AuthorizationOracle) -> None:
        self.oracle = oracle

    async def ensure_admin(self, user_id: UUID) -> None:
        """Raise unless the user holds the admin role."""
        if not await self.oracle.is_admin(user_id):
            raise ForbiddenException("관리자 권한이 필요합니다.")


async def get_identity_service(session: AsyncSession = Depends(get_db_session)) -> IdentityService:
    """Dependency to provide identity service."""
    return IdentityService(IdentityRepository(session))


async def get_optional_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UUID | None:
    """Resolve caller id from bearer token, or None when absent or invalid."""
    if credentials is None:
        return None
    try:
        return subject_from_token(credentials.credentials)
    except AuthException:
        logger.info("Rejected bearer token")
        return None


async def get_current_user_id(user_id: UUID | None = Depends(get_optional_user_id)) -> UUID:
    """Resolve authenticated caller id or fail with 401."""
    if user_id is None:
        raise AuthException("인증이 필요합니다.")
    return user_id
