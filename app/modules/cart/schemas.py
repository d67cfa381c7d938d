"""Cart schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.modules.orders.schemas import InstructorRead


class CartAdd(BaseModel):
    course_id: UUID | None = None


class CartCourseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    price: int
    thumbnail: str | None
    instructor: InstructorRead | None


class CartItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    added_at: datetime
    course: CartCourseRead | None


class CartSummary(BaseModel):
    item_count: int
    total_amount: int


class CartRead(BaseModel):
    items: list[CartItemRead]
    summary: CartSummary


class CartAddResponse(BaseModel):
    success: bool = True
    cart_item_id: UUID


class CartRemoveResponse(BaseModel):
    success: bool = True
    removed: bool


class CartClearResponse(BaseModel):
    success: bool = True
    deleted_count: int
