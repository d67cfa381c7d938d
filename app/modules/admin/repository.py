"""Admin repository layer."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PAID_ORDER_STATUSES
from app.modules.courses.models import Course
from app.modules.enrollments.models import Enrollment
from app.modules.identity.models import User
from app.modules.orders.models import Order
from app.shared.utils import utc_now

ACTIVE_USER_WINDOW = timedelta(hours=24)


class AdminRepository:
    """Aggregate reads for the admin overview and the metrics scrape."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def count_courses(self) -> int:
        return int((await self.session.scalar(select(func.count()).select_from(Course))) or 0)

    async def count_enrollments(self) -> int:
        return int((await self.session.scalar(select(func.count()).select_from(Enrollment))) or 0)

    async def count_active_users(self, since: datetime) -> int:
        stmt = select(func.count()).select_from(User).where(User.last_sign_in_at >= since)
        return int((await self.session.scalar(stmt)) or 0)

    async def sum_paid_revenue(self) -> int:
        stmt = select(func.coalesce(func.sum(Order.amount), 0)).where(
            Order.status.in_([status.value for status in PAID_ORDER_STATUSES]),
        )
        return int((await self.session.scalar(stmt)) or 0)

    async def get_business_overview(self) -> dict[str, datetime | int]:
        now = utc_now()
        return {
            "generated_at": now,
            "courses_total": await self.count_courses(),
            "enrollments_total": await self.count_enrollments(),
            "active_users": await self.count_active_users(now - ACTIVE_USER_WINDOW),
            "revenue_total": await self.sum_paid_revenue(),
        }
