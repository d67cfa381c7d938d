"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.core.enums import EnrollmentStatusEnum
from app.modules.payments.gateway import get_payment_method_text, get_payment_status_text
from app.shared.pagination import PageInfo


class OrderCreate(BaseModel):
    """Checkout request. Both ids are checked by the service, not the parser."""

    model_config = ConfigDict(populate_by_name=True)

    course_id: UUID | None = Field(default=None, alias="courseId")
    user_id: UUID | None = Field(default=None, alias="userId")


class CoursePriceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    price: int


class CourseSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    thumbnail: str | None


class InstructorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str | None


class CourseDetailRead(CourseSummaryRead):
    description: str | None
    instructor: InstructorRead | None


class EnrollmentRead(BaseModel):
    """Enrollment response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    status: EnrollmentStatusEnum
    progress: int
    enrolled_at: datetime
    completed_at: datetime | None


class OrderRead(BaseModel):
    """Order as created by checkout."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    order_number: str
    order_id: str
    amount: int
    original_amount: int
    discount_amount: int
    status: str
    created_at: datetime


class OrderCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    is_free: bool = Field(alias="isFree")
    enrollment: EnrollmentRead | None = None
    order: OrderRead | None = None
    course: CoursePriceRead | None = None


class OrderListItemRead(BaseModel):
    """Order row in the buyer's history."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
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


class OrderListResponse(BaseModel):
    success: bool = True
    orders: list[OrderListItemRead]
    pagination: PageInfo


class PaymentAttemptRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    method: str | None
    amount: int
    status: str
    approved_at: datetime | None
    raw_data: dict


class OrderDetailRead(BaseModel):
    """Order detail; owner id is intentionally not exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    order_id: str
    amount: int
    original_amount: int
    discount_amount: int
    status: str
    payment_method: str | None
    payment_key: str | None
    created_at: datetime
    paid_at: datetime | None
    course: CourseDetailRead | None
    payments: list[PaymentAttemptRead]

    @computed_field
    @property
    def status_text(self) -> str | None:
        return get_payment_status_text(self.status)

    @computed_field
    @property
    def payment_method_text(self) -> str | None:
        return get_payment_method_text(self.payment_method)


class OrderDetailResponse(BaseModel):
    success: bool = True
    order: OrderDetailRead
