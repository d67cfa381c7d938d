"""Admin business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.modules.admin.repository import AdminRepository
from app.modules.admin.schemas import BusinessOverviewRead
from app.modules.identity.repository import IdentityRepository
from app.modules.identity.service import IdentityService
from app.modules.orders.models import Order
from app.modules.orders.repository import OrdersRepository
from app.shared.pagination import PaginationParams

logger = logging.getLogger(__name__)


class AdminService:
    """Read-only operator views."""

    def __init__(
        self,
        repository: AdminRepository,
        orders_repository: OrdersRepository,
        identity_service: IdentityService,
    ) -> None:
        self.repository = repository
        self.orders_repository = orders_repository
        self.identity_service = identity_service

    async def list_orders(
        self,
        actor_id: UUID,
        params: PaginationParams,
        status: str | None = None,
    ) -> tuple[list[Order], int]:
        await self.identity_service.ensure_admin(actor_id)
        return await self.orders_repository.list_orders(params.limit, params.offset, status=status)

    async def get_business_overview(self, actor_id: UUID) -> BusinessOverviewRead:
        await self.identity_service.ensure_admin(actor_id)
        overview = await self.repository.get_business_overview()
        return BusinessOverviewRead(**overview)


async def get_admin_service(session: AsyncSession = Depends(get_db_session)) -> AdminService:
    """Dependency provider for admin service."""
    return AdminService(
        repository=AdminRepository(session),
        orders_repository=OrdersRepository(session),
        identity_service=IdentityService(IdentityRepository(session)),
    )
