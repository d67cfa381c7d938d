"""Payments API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.modules.orders.schemas import OrderRead
from app.modules.payments.schemas import PaymentConfirmRequest, PaymentConfirmResponse
from app.modules.payments.service import PaymentsService, get_payments_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/confirm", response_model=PaymentConfirmResponse)
async def confirm_payment(
    payload: PaymentConfirmRequest,
    service: PaymentsService = Depends(get_payments_service),
) -> PaymentConfirmResponse:
    """Approve a hosted-checkout payment and settle its order."""
    outcome = await service.confirm_payment(payload.payment_key, payload.order_id, payload.amount)
    confirmation = outcome.result
    return PaymentConfirmResponse(
        payment=confirmation.payment,
        order=OrderRead.model_validate(confirmation.order),
    )
