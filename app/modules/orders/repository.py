"""Order repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import insert_unique
from app.core.enums import OrderStatusEnum
from app.modules.courses.models import Course
from app.modules.orders.models import Order, Payment


class OrdersRepository:
    """DB access methods for orders and payment attempts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_order(
        self,
        user_id: UUID,
        course_id: UUID,
        order_number: str,
        order_id: str,
        amount: int,
        original_amount: int,
        discount_amount: int,
    ) -> Order:
        order = Order(
            user_id=user_id,
            course_id=course_id,
            order_number=order_number,
            order_id=order_id,
            amount=amount,
            original_amount=original_amount,
            discount_amount=discount_amount,
            status=OrderStatusEnum.PENDING,
        )
        return await insert_unique(self.session, order, "Order identifier already exists")

    async def get_order_detail(self, order_id: UUID, user_id: UUID) -> Order | None:
        stmt = (
            select(Order)
            .options(
                selectinload(Order.course).selectinload(Course.instructor),
                selectinload(Order.payments),
            )
            .where(Order.id == order_id, Order.user_id == user_id)
        )
        return await self.session.scalar(stmt)

    async def get_order_by_gateway_id(self, gateway_order_id: str, for_update: bool = False) -> Order | None:
        stmt = select(Order).options(selectinload(Order.course)).where(Order.order_id == gateway_order_id)
        if for_update:
            # Serializes concurrent confirms; the loser sees the settled status.
            stmt = stmt.with_for_update(of=Order)
        return await self.session.scalar(stmt)

    async def list_orders_for_user(self, user_id: UUID, limit: int, offset: int) -> list[Order]:
        stmt = (
            select(Order)
            .options(selectinload(Order.course))
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return (await self.session.scalars(stmt)).all()

    async def count_orders_for_user(self, user_id: UUID) -> int:
        # Savepoint keeps the request transaction usable if the count fails.
        async with self.session.begin_nested():
            stmt = select(func.count()).select_from(Order).where(Order.user_id == user_id)
            return int((await self.session.scalar(stmt)) or 0)

    async def list_orders(
        self,
        limit: int,
        offset: int,
        status: str | None = None,
    ) -> tuple[list[Order], int]:
        base_stmt: Select[tuple[Order]] = select(Order)
        if status is not None:
            base_stmt = base_stmt.where(Order.status == status)
        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            base_stmt.options(selectinload(Order.course))
            .order_by(Order.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def create_payment(
        self,
        order: Order,
        payment_key: str,
        gateway_order_id: str,
        method: str | None,
        amount: int,
        status: str,
        requested_at: datetime | None,
        approved_at: datetime | None,
        raw_data: dict,
    ) -> Payment:
        payment = Payment(
            order_id=order.id,
            payment_key=payment_key,
            gateway_order_id=gateway_order_id,
            method=method,
            amount=amount,
            status=status,
            requested_at=requested_at,
            approved_at=approved_at,
            raw_data=raw_data,
        )
        self.session.add(payment)
        await self.session.flush()
        return payment

    async def mark_order_paid(
        self,
        order: Order,
        payment_key: str,
        payment_method: str | None,
        paid_at: datetime,
    ) -> Order:
        order.status = OrderStatusEnum.PAID
        order.payment_key = payment_key
        order.payment_method = payment_method
        order.paid_at = paid_at
        await self.session.flush()
        return order
