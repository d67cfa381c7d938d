"""Notifications API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.modules.identity.service import get_current_user_id
from app.modules.notifications.schemas import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationCreateResponse,
    NotificationListResponse,
    NotificationRead,
)
from app.modules.notifications.service import NotificationsService, get_notifications_service
from app.shared.pagination import PaginationParams, build_page_info, coerce_positive_int

router = APIRouter(prefix="/notifications", tags=["notifications"])

NOTIFICATIONS_DEFAULT_LIMIT = 20
NOTIFICATIONS_MAX_LIMIT = 50


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    service: NotificationsService = Depends(get_notifications_service),
    user_id: UUID = Depends(get_current_user_id),
) -> NotificationListResponse:
    """List notifications for current user."""
    params = PaginationParams(
        page=coerce_positive_int(page, 1),
        limit=coerce_positive_int(limit, NOTIFICATIONS_DEFAULT_LIMIT, maximum=NOTIFICATIONS_MAX_LIMIT),
    )
    items, total = await service.list_notifications(user_id, params)
    return NotificationListResponse(
        notifications=[NotificationRead.model_validate(item) for item in items],
        pagination=build_page_info(total, params),
    )


@router.post("", response_model=NotificationCreateResponse)
async def create_notification(
    payload: NotificationCreate,
    service: NotificationsService = Depends(get_notifications_service),
    user_id: UUID = Depends(get_current_user_id),
) -> NotificationCreateResponse:
    """Create notification."""
    notification = await service.create_notification(payload, user_id)
    return NotificationCreateResponse(notification_id=notification.id)


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    service: NotificationsService = Depends(get_notifications_service),
    user_id: UUID = Depends(get_current_user_id),
) -> MarkAllReadResponse:
    """Mark all notifications of current user as read."""
    updated = await service.mark_all_read(user_id)
    return MarkAllReadResponse(updated_count=updated)
