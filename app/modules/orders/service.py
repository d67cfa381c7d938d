"""Order creation and read paths."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.modules.courses.models import Course
from app.modules.courses.repository import CoursesRepository
from app.modules.enrollments.models import Enrollment
from app.modules.enrollments.repository import EnrollmentsRepository
from app.modules.orders.models import Order
from app.modules.orders.repository import OrdersRepository
from app.modules.payments.gateway import generate_order_id, generate_order_number
from app.shared.exceptions import (
    AuthException,
    ConflictException,
    DuplicateEntityError,
    ForbiddenException,
    InternalException,
    NotFoundException,
    ValidationException,
)
from app.shared.outcome import Outcome
from app.shared.pagination import PaginationParams
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

ALREADY_ENROLLED_MESSAGE = "이미 수강 중인 강의입니다."


@dataclass(slots=True)
class OrderCreationResult:
    """Either a direct enrollment (free course) or a pending order (paid course)."""

    is_free: bool
    course: Course
    enrollment: Enrollment | None = None
    order: Order | None = None


class OrdersService:
    """Checkout coordinator and order history."""

    def __init__(
        self,
        repository: OrdersRepository,
        courses_repository: CoursesRepository,
        enrollments_repository: EnrollmentsRepository,
    ) -> None:
        self.repository = repository
        self.courses_repository = courses_repository
        self.enrollments_repository = enrollments_repository

    async def create_order(self, course_id: UUID | None, user_id: UUID | None) -> OrderCreationResult:
        """Enroll directly into a free course or open a PENDING order for a paid one."""
        if course_id is None or user_id is None:
            raise ValidationException("필수 정보가 누락되었습니다.")

        course = await self.courses_repository.get_course_by_id(course_id)
        if course is None:
            raise NotFoundException("강의 정보를 찾을 수 없습니다.")

        # Fast path only: the store's unique index is the source of truth.
        existing = await self.enrollments_repository.get_active_enrollment(user_id, course_id)
        if existing is not None:
            raise ConflictException(ALREADY_ENROLLED_MESSAGE)

        if course.is_free:
            enrollment = await self._enroll_free(user_id, course)
            return OrderCreationResult(is_free=True, course=course, enrollment=enrollment)

        order = await self._open_order(user_id, course)
        return OrderCreationResult(is_free=False, course=course, order=order)

    async def _enroll_free(self, user_id: UUID, course: Course) -> Enrollment:
        try:
            return await self.enrollments_repository.create_enrollment(
                user_id=user_id,
                course_id=course.id,
                enrolled_at=utc_now(),
            )
        except DuplicateEntityError as exc:
            raise ConflictException(ALREADY_ENROLLED_MESSAGE) from exc
        except SQLAlchemyError as exc:
            logger.exception("Free enrollment failed for course %s", course.id)
            raise InternalException("수강 등록에 실패했습니다.") from exc

    async def _open_order(self, user_id: UUID, course: Course) -> Order:
        original_amount = course.original_price or course.price
        try:
            return await self.repository.create_order(
                user_id=user_id,
                course_id=course.id,
                order_number=generate_order_number(),
                order_id=generate_order_id(user_id),
                amount=course.price,
                original_amount=original_amount,
                discount_amount=original_amount - course.price,
            )
        except (DuplicateEntityError, SQLAlchemyError) as exc:
            logger.exception("Order creation failed for course %s", course.id)
            raise InternalException("주문 생성에 실패했습니다.") from exc

    async def get_order(self, order_id: UUID, actor_id: UUID) -> Order:
        """Return one of the caller's orders with course and payment attempts."""
        try:
            order = await self.repository.get_order_detail(order_id, actor_id)
        except SQLAlchemyError as exc:
            logger.exception("Order detail fetch failed for %s", order_id)
            raise InternalException("주문 상세 정보를 불러오는데 실패했습니다.") from exc
        if order is None:
            raise NotFoundException("주문을 찾을 수 없습니다.")
        return order

    async def list_orders(
        self,
        user_id: UUID | None,
        actor_id: UUID | None,
        params: PaginationParams,
    ) -> Outcome[tuple[list[Order], int]]:
        """List the caller's orders; the total count is best-effort."""
        if not user_id:
            raise ValidationException("사용자 ID가 필요합니다.")
        if actor_id is None:
            raise AuthException("인증이 필요합니다.")
        if user_id != actor_id:
            raise ForbiddenException("다른 사용자의 주문 정보에는 접근할 수 없습니다.")

        try:
            orders = await self.repository.list_orders_for_user(user_id, params.limit, params.offset)
        except SQLAlchemyError as exc:
            logger.exception("Orders fetch failed for user %s", user_id)
            raise InternalException("주문 내역을 불러오는데 실패했습니다.") from exc

        outcome: Outcome[tuple[list[Order], int]] = Outcome(result=(orders, 0))
        try:
            total = await self.repository.count_orders_for_user(user_id)
        except SQLAlchemyError:
            logger.warning("Orders count failed for user %s", user_id, exc_info=True)
            outcome.warn("order count unavailable")
            return outcome

        outcome.result = (orders, total)
        return outcome


async def get_orders_service(session: AsyncSession = Depends(get_db_session)) -> OrdersService:
    """Dependency provider for orders service."""
    return OrdersService(
        repository=OrdersRepository(session),
        courses_repository=CoursesRepository(session),
        enrollments_repository=EnrollmentsRepository(session),
    )
