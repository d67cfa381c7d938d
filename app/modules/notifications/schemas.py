"""Notifications schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.shared.pagination import PageInfo


class NotificationCreate(BaseModel):
    """Create notification request; text fields are checked by the service."""

    target_user_id: UUID | None = None
    type: str | None = Field(default=None, max_length=50)
    title: str | None = Field(default=None, max_length=255)
    message: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationRead(BaseModel):
    """Notification response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    title: str
    message: str
    data: dict[str, Any]
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationRead]
    pagination: PageInfo


class NotificationCreateResponse(BaseModel):
    success: bool = True
    notification_id: UUID


class MarkAllReadResponse(BaseModel):
    success: bool = True
    updated_count: int
