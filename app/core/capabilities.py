"""Store-side capabilities the coordinator depends on.

Each protocol may be realized in-process or by a remote call; services only
rely on the contract below.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol
from uuid import UUID


class AuthorizationOracle(Protocol):
    """Resolve elevated roles for a user."""

    async def is_admin(self, user_id: UUID) -> bool:
        """Return True when the user holds the admin role."""


class CertificateNumberIssuer(Protocol):
    """Hand out unique certificate numbers."""

    async def next(self) -> str:
        """Return a certificate number never returned before."""


class CartStore(Protocol):
    """Cart rows keyed by (user, course); removal is idempotent."""

    async def list_items(self, user_id: UUID) -> Sequence[Any]: ...

    async def get_item(self, user_id: UUID, course_id: UUID) -> Any | None: ...

    async def add_item(self, user_id: UUID, course_id: UUID) -> Any:
        """Insert a row; raise DuplicateEntityError when it already exists."""

    async def remove(self, user_id: UUID, course_id: UUID) -> bool:
        """Remove a course from the cart; return whether a row was removed."""

    async def clear(self, user_id: UUID) -> int: ...


class NotificationStore(Protocol):
    """Notification rows with bulk state updates."""

    async def create_notification(
        self,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        data: dict,
    ) -> Any: ...

    async def list_notifications_for_user(
        self,
        user_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[Sequence[Any], int]: ...

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification as read; return updated count."""
