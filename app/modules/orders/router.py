"""Orders API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.modules.identity.service import get_current_user_id, get_optional_user_id
from app.modules.orders.schemas import (
    CoursePriceRead,
    EnrollmentRead,
    OrderCreate,
    OrderCreateResponse,
    OrderDetailRead,
    OrderDetailResponse,
    OrderListItemRead,
    OrderListResponse,
    OrderRead,
)
from app.modules.orders.service import OrdersService, get_orders_service
from app.shared.pagination import build_page_info, get_pagination_params

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/create", response_model=OrderCreateResponse, response_model_exclude_none=True)
async def create_order(
    payload: OrderCreate,
    service: OrdersService = Depends(get_orders_service),
) -> OrderCreateResponse:
    """Enroll into a free course or open a pending order for a paid one."""
    result = await service.create_order(payload.course_id, payload.user_id)
    if result.is_free:
        return OrderCreateResponse(
            is_free=True,
            enrollment=EnrollmentRead.model_validate(result.enrollment),
        )
    return OrderCreateResponse(
        is_free=False,
        order=OrderRead.model_validate(result.order),
        course=CoursePriceRead.model_validate(result.course),
    )


@router.get("", response_model=OrderListResponse)
async def list_orders(
    user_id: UUID | None = Query(default=None, alias="userId"),
    pagination=Depends(get_pagination_params),
    service: OrdersService = Depends(get_orders_service),
    actor_id: UUID | None = Depends(get_optional_user_id),
) -> OrderListResponse:
    """List the caller's orders, newest first."""
    outcome = await service.list_orders(user_id, actor_id, pagination)
    orders, total = outcome.result
    return OrderListResponse(
        orders=[OrderListItemRead.model_validate(order) for order in orders],
        pagination=build_page_info(total, pagination),
    )


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: UUID,
    service: OrdersService = Depends(get_orders_service),
    actor_id: UUID = Depends(get_current_user_id),
) -> OrderDetailResponse:
    """Return order detail with course and payment attempts."""
    order = await service.get_order(order_id, actor_id)
    return OrderDetailResponse(order=OrderDetailRead.model_validate(order))
