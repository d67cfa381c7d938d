"""Payment confirmation schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.modules.orders.schemas import OrderRead


class PaymentConfirmRequest(BaseModel):
    """Redirect parameters returned by hosted checkout."""

    model_config = ConfigDict(populate_by_name=True)

    payment_key: str | None = Field(default=None, alias="paymentKey")
    order_id: str | None = Field(default=None, alias="orderId")
    amount: int | None = None


class PaymentConfirmResponse(BaseModel):
    success: bool = True
    payment: dict[str, Any] | None
    order: OrderRead
