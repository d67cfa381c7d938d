"""Toss Payments adapter: order identifiers, display vocabularies, confirm client."""

from __future__ import annotations

import base64
import logging
import secrets
import string
import time
from typing import Any
from uuid import UUID

import httpx
from fastapi import Request

from app.core.config import Settings
from app.shared.exceptions import InternalException, PaymentGatewayException

logger = logging.getLogger(__name__)

ORDER_PREFIX = "LVUP"
_BASE36_UPPER = string.digits + string.ascii_uppercase
_BASE36_LOWER = string.digits + string.ascii_lowercase

PAYMENT_STATUS_TEXT: dict[str, str] = {
    "PENDING": "결제 대기",
    "READY": "결제 대기",
    "IN_PROGRESS": "결제 진행 중",
    "WAITING_FOR_DEPOSIT": "입금 대기",
    "DONE": "결제 완료",
    "PAID": "결제 완료",
    "COMPLETED": "결제 완료",
    "CANCELED": "결제 취소",
    "PARTIAL_CANCELED": "부분 취소",
    "ABORTED": "결제 중단",
    "EXPIRED": "결제 만료",
}

PAYMENT_METHOD_TEXT: dict[str, str] = {
    "카드": "신용/체크카드",
    "가상계좌": "가상계좌 입금",
    "간편결제": "간편결제",
    "휴대폰": "휴대폰 결제",
    "계좌이체": "실시간 계좌이체",
    "문화상품권": "문화상품권",
    "도서문화상품권": "도서문화상품권",
    "게임문화상품권": "게임문화상품권",
}


def _random_token(alphabet: str, length: int = 6) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _timestamp_ms() -> int:
    return time.time_ns() // 1_000_000


def generate_order_number() -> str:
    """Human-facing order number: LVUP-<ms timestamp>-<6 upper-case base36>."""
    return f"{ORDER_PREFIX}-{_timestamp_ms()}-{_random_token(_BASE36_UPPER)}"


def generate_order_id(user_id: UUID) -> str:
    """Gateway order id (6-64 chars of [A-Za-z0-9_-]) correlatable to the buyer."""
    return f"{ORDER_PREFIX}-{_timestamp_ms()}-{user_id.hex[:8]}-{_random_token(_BASE36_LOWER)}"


def get_payment_status_text(status: str | None) -> str | None:
    """Display text for a gateway status; unknown statuses pass through."""
    if status is None:
        return None
    return PAYMENT_STATUS_TEXT.get(status, status)


def get_payment_method_text(method: str | None) -> str | None:
    """Display text for a gateway payment method; unknown methods pass through."""
    if method is None:
        return None
    return PAYMENT_METHOD_TEXT.get(method, method)


def format_price(price: int) -> str:
    """Format KRW amount with thousands separators."""
    return f"{price:,}"


class TossPaymentsClient:
    """Minimal async client for the Toss Payments REST API."""

    def __init__(
        self,
        secret_key: str,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        token = base64.b64encode(f"{secret_key}:".encode("utf-8")).decode("ascii")
        # One pooled client per process; closed from the app lifespan.
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Basic {token}",
                "Content-Type": "application/json",
            },
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def confirm(self, payment_key: str, order_id: str, amount: int) -> dict[str, Any]:
        """Approve a payment authorized through hosted checkout."""
        try:
            response = await self._client.post(
                "/v1/payments/confirm",
                json={"paymentKey": payment_key, "orderId": order_id, "amount": amount},
            )
        except httpx.HTTPError as exc:
            logger.exception("Payment gateway request failed for order %s", order_id)
            raise PaymentGatewayException("결제 서버와 통신할 수 없습니다.", status_code=502) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            if not response.is_error:
                logger.error("Payment gateway returned a non-object body for order %s", order_id)
                raise PaymentGatewayException("결제 응답을 처리할 수 없습니다.", status_code=502)
            payload = {}

        if response.is_error:
            logger.warning(
                "Payment gateway rejected order %s: %s %s",
                order_id,
                response.status_code,
                payload.get("code"),
            )
            raise PaymentGatewayException(
                payload.get("message") or "결제 승인에 실패했습니다.",
                status_code=response.status_code,
                code=payload.get("code"),
            )
        return payload


def build_toss_client(settings: Settings) -> TossPaymentsClient | None:
    """Create the shared gateway client, or None when no secret key is configured."""
    if not settings.toss_secret_key:
        return None
    return TossPaymentsClient(
        secret_key=settings.toss_secret_key,
        base_url=settings.toss_api_base_url,
        timeout_seconds=settings.toss_request_timeout_seconds,
    )


def get_toss_client(request: Request) -> TossPaymentsClient:
    """Dependency provider for the process-wide gateway client kept on app.state."""
    client = getattr(request.app.state, "toss_client", None)
    if client is None:
        raise InternalException("결제 설정이 올바르지 않습니다.")
    return client
