"""Cart repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import insert_unique
from app.modules.cart.models import CartItem
from app.modules.courses.models import Course


class CartRepository:
    """DB operations for carts; also the store-backed cart capability."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_items(self, user_id: UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .options(selectinload(CartItem.course).selectinload(Course.instructor))
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.added_at.desc())
        )
        return (await self.session.scalars(stmt)).all()

    async def get_item(self, user_id: UUID, course_id: UUID) -> CartItem | None:
        stmt = select(CartItem).where(CartItem.user_id == user_id, CartItem.course_id == course_id)
        return await self.session.scalar(stmt)

    async def add_item(self, user_id: UUID, course_id: UUID) -> CartItem:
        item = CartItem(user_id=user_id, course_id=course_id)
        return await insert_unique(self.session, item, "Course already in cart")

    async def remove(self, user_id: UUID, course_id: UUID) -> bool:
        stmt = delete(CartItem).where(CartItem.user_id == user_id, CartItem.course_id == course_id)
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def clear(self, user_id: UUID) -> int:
        stmt = delete(CartItem).where(CartItem.user_id == user_id)
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
