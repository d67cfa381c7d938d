"""Admin schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field

from app.modules.orders.schemas import CourseSummaryRead
from app.modules.payments.gateway import get_payment_status_text
from app.shared.pagination import PageInfo


class AdminOrderRead(BaseModel):
    """Order row as seen by operators; includes the buyer id."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    order_number: str
    order_id: str
    amount: int
    status: str
    payment_method: str | None
    created_at: datetime
    paid_at: datetime | None
    course: CourseSummaryRead | None

    @computed_field
    @property
    def status_text(self) -> str | None:
        return get_payment_status_text(self.status)


class AdminOrderListResponse(BaseModel):
    success: bool = True
    orders: list[AdminOrderRead]
    pagination: PageInfo


class BusinessOverviewRead(BaseModel):
    """Business counters across the marketplace."""

    generated_at: datetime
    courses_total: int
    enrollments_total: int
    active_users: int
    revenue_total: int
