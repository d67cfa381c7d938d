"""Cart business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.capabilities import CartStore
from app.core.database import get_db_session
from app.modules.cart.models import CartItem
from app.modules.cart.repository import CartRepository
from app.modules.courses.repository import CoursesRepository
from app.modules.enrollments.repository import EnrollmentsRepository
from app.shared.exceptions import (
    ConflictException,
    DuplicateEntityError,
    InternalException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


class CartService:
    """Cart domain service."""

    def __init__(
        self,
        repository: CartStore,
        courses_repository: CoursesRepository,
        enrollments_repository: EnrollmentsRepository,
    ) -> None:
        self.repository = repository
        self.courses_repository = courses_repository
        self.enrollments_repository = enrollments_repository

    async def list_cart(self, user_id: UUID) -> tuple[list[CartItem], int]:
        """Return cart items and their total price."""
        try:
            items = await self.repository.list_items(user_id)
        except SQLAlchemyError as exc:
            logger.exception("Cart fetch failed for user %s", user_id)
            raise InternalException("장바구니를 불러오는 중 오류가 발생했습니다.") from exc
        total_amount = sum(item.course.price for item in items if item.course is not None)
        return items, total_amount

    async def add_to_cart(self, user_id: UUID, course_id: UUID | None) -> UUID:
        """Add a course to the cart; re-adding returns the existing item."""
        if course_id is None:
            raise ValidationException("강의 ID가 필요합니다.")

        course = await self.courses_repository.get_course_by_id(course_id)
        if course is None:
            raise NotFoundException("강의 정보를 찾을 수 없습니다.")

        if await self.enrollments_repository.get_active_enrollment(user_id, course_id) is not None:
            raise ConflictException("이미 수강 중인 강의입니다.")

        existing = await self.repository.get_item(user_id, course_id)
        if existing is not None:
            return existing.id

        try:
            item = await self.repository.add_item(user_id, course_id)
        except DuplicateEntityError:
            existing = await self.repository.get_item(user_id, course_id)
            if existing is None:
                raise InternalException("장바구니에 추가하는 중 오류가 발생했습니다.")
            return existing.id
        except SQLAlchemyError as exc:
            logger.exception("Adding course %s to cart failed", course_id)
            raise InternalException("장바구니에 추가하는 중 오류가 발생했습니다.") from exc
        return item.id

    async def remove_from_cart(self, user_id: UUID, course_id: UUID) -> bool:
        """Remove one course; removing an absent course is not an error."""
        try:
            return await self.repository.remove(user_id, course_id)
        except SQLAlchemyError as exc:
            logger.exception("Removing course %s from cart failed", course_id)
            raise InternalException("장바구니에서 제거하는 중 오류가 발생했습니다.") from exc

    async def clear_cart(self, user_id: UUID) -> int:
        """Remove every item from the cart."""
        try:
            return await self.repository.clear(user_id)
        except SQLAlchemyError as exc:
            logger.exception("Clearing cart failed for user %s", user_id)
            raise InternalException("장바구니를 비우는 중 오류가 발생했습니다.") from exc


async def get_cart_service(session: AsyncSession = Depends(get_db_session)) -> CartService:
    """Dependency provider for cart service."""
    return CartService(
        repository=CartRepository(session),
        courses_repository=CoursesRepository(session),
        enrollments_repository=EnrollmentsRepository(session),
    )
