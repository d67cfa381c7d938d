"""Cart API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.modules.cart.schemas import (
    CartAdd,
    CartAddResponse,
    CartClearResponse,
    CartItemRead,
    CartRead,
    CartRemoveResponse,
    CartSummary,
)
from app.modules.cart.service import CartService, get_cart_service
from app.modules.identity.service import get_current_user_id

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartRead)
async def get_cart(
    service: CartService = Depends(get_cart_service),
    user_id: UUID = Depends(get_current_user_id),
) -> CartRead:
    """Return cart items with price summary."""
    items, total_amount = await service.list_cart(user_id)
    return CartRead(
        items=[CartItemRead.model_validate(item) for item in items],
        summary=CartSummary(item_count=len(items), total_amount=total_amount),
    )


@router.post("", response_model=CartAddResponse)
async def add_to_cart(
    payload: CartAdd,
    service: CartService = Depends(get_cart_service),
    user_id: UUID = Depends(get_current_user_id),
) -> CartAddResponse:
    """Add a course to the cart."""
    item_id = await service.add_to_cart(user_id, payload.course_id)
    return CartAddResponse(cart_item_id=item_id)


@router.delete("", response_model=CartClearResponse)
async def clear_cart(
    service: CartService = Depends(get_cart_service),
    user_id: UUID = Depends(get_current_user_id),
) -> CartClearResponse:
    """Empty the cart."""
    deleted = await service.clear_cart(user_id)
    return CartClearResponse(deleted_count=deleted)


@router.delete("/{course_id}", response_model=CartRemoveResponse)
async def remove_from_cart(
    course_id: UUID,
    service: CartService = Depends(get_cart_service),
    user_id: UUID = Depends(get_current_user_id),
) -> CartRemoveResponse:
    """Remove a course from the cart."""
    removed = await service.remove_from_cart(user_id, course_id)
    return CartRemoveResponse(removed=removed)
