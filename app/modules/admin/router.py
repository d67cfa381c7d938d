"""Admin API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.modules.admin.schemas import AdminOrderListResponse, AdminOrderRead, BusinessOverviewRead
from app.modules.admin.service import AdminService, get_admin_service
from app.modules.identity.service import get_current_user_id
from app.shared.pagination import build_page_info, get_pagination_params

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/orders", response_model=AdminOrderListResponse)
async def list_orders(
    status: str | None = Query(default=None, max_length=32),
    pagination=Depends(get_pagination_params),
    service: AdminService = Depends(get_admin_service),
    actor_id: UUID = Depends(get_current_user_id),
) -> AdminOrderListResponse:
    """List all orders, newest first."""
    orders, total = await service.list_orders(actor_id, pagination, status=status or None)
    return AdminOrderListResponse(
        orders=[AdminOrderRead.model_validate(order) for order in orders],
        pagination=build_page_info(total, pagination),
    )


@router.get("/overview", response_model=BusinessOverviewRead)
async def get_business_overview(
    service: AdminService = Depends(get_admin_service),
    actor_id: UUID = Depends(get_current_user_id),
) -> BusinessOverviewRead:
    """Business counters for operators."""
    return await service.get_business_overview(actor_id)
