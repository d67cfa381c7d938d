"""Notifications business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.capabilities import AuthorizationOracle, NotificationStore
from app.core.database import get_db_session
from app.modules.identity.repository import IdentityRepository
from app.modules.notifications.models import Notification
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.schemas import NotificationCreate
from app.shared.exceptions import ForbiddenException, InternalException, ValidationException
from app.shared.pagination import PaginationParams

logger = logging.getLogger(__name__)


class NotificationsService:
    """Notifications domain service."""

    def __init__(
        self,
        repository: NotificationStore,
        authorization: AuthorizationOracle,
    ) -> None:
        self.repository = repository
        self.authorization = authorization

    async def list_notifications(
        self,
        user_id: UUID,
        params: PaginationParams,
    ) -> tuple[list[Notification], int]:
        """List notifications for the caller, newest first."""
        try:
            return await self.repository.list_notifications_for_user(user_id, params.limit, params.offset)
        except SQLAlchemyError as exc:
            logger.exception("Notifications fetch failed for user %s", user_id)
            raise InternalException("알림을 불러오는 중 오류가 발생했습니다.") from exc

    async def create_notification(self, payload: NotificationCreate, actor_id: UUID) -> Notification:
        """Create notification for the caller, or for another user when caller is admin."""
        if not payload.type or not payload.title or not payload.message:
            raise ValidationException("필수 필드가 누락되었습니다. (type, title, message)")

        target_user_id = payload.target_user_id or actor_id
        if target_user_id != actor_id and not await self.authorization.is_admin(actor_id):
            raise ForbiddenException("다른 사용자에게 알림을 보낼 수 없습니다.")

        try:
            return await self.repository.create_notification(
                user_id=target_user_id,
                type=payload.type,
                title=payload.title,
                message=payload.message,
                data=payload.data,
            )
        except SQLAlchemyError as exc:
            logger.exception("Notification creation failed for user %s", target_user_id)
            raise InternalException("알림을 생성하는 중 오류가 발생했습니다.") from exc

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the caller as read."""
        try:
            return await self.repository.mark_all_read(user_id)
        except SQLAlchemyError as exc:
            logger.exception("Marking notifications read failed for user %s", user_id)
            raise InternalException("알림을 읽음 처리하는 중 오류가 발생했습니다.") from exc


async def get_notifications_service(session: AsyncSession = Depends(get_db_session)) -> NotificationsService:
    """Dependency provider for notifications service."""
    return NotificationsService(
        repository=NotificationsRepository(session),
        authorization=IdentityRepository(session),
    )
