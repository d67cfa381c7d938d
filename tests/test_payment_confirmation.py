from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import Settings
from app.core.enums import NotificationTypeEnum, OrderStatusEnum
from app.modules.payments.gateway import TossPaymentsClient, build_toss_client, format_price
from app.modules.payments.service import PaymentsService
from app.shared.exceptions import (
    DuplicateEntityError,
    InternalException,
    NotFoundException,
    PaymentGatewayException,
    ValidationException,
)

GATEWAY_ORDER_ID = "LVUP-1760000000000-0a1b2c3d-x1y2z3"


def _db_error() -> OperationalError:
    return OperationalError("SQL", {}, Exception("store unavailable"))


def _approved_payment(amount: int = 50000) -> dict[str, Any]:
    return {
        "paymentKey": "pay_test_key",
        "orderId": GATEWAY_ORDER_ID,
        "status": "DONE",
        "method": "카드",
        "totalAmount": amount,
        "requestedAt": "2026-05-01T10:00:00+09:00",
        "approvedAt": "2026-05-01T10:00:05+09:00",
    }


def _order(amount: int = 50000, status: str = OrderStatusEnum.PENDING) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        user_id=uuid4(),
        course_id=uuid4(),
        order_id=GATEWAY_ORDER_ID,
        amount=amount,
        status=status,
        payment_key=None,
        payment_method=None,
        paid_at=None,
        course=SimpleNamespace(title="실전 웹 개발"),
    )


class FakeGateway:
    def __init__(self, response: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.response = response or _approved_payment()
        self.error = error
        self.calls: list[tuple[str, str, int]] = []

    async def confirm(self, payment_key: str, order_id: str, amount: int) -> dict[str, Any]:
        self.calls.append((payment_key, order_id, amount))
        if self.error is not None:
            raise self.error
        return self.response


@dataclass
class FakeOrdersRepository:
    orders: list[SimpleNamespace]
    payments: list[dict[str, Any]] = field(default_factory=list)
    fail_recording: bool = False
    locked_lookups: list[str] = field(default_factory=list)

    async def get_order_by_gateway_id(self, gateway_order_id: str, for_update: bool = False) -> SimpleNamespace | None:
        if for_update:
            self.locked_lookups.append(gateway_order_id)
        for order in self.orders:
            if order.order_id == gateway_order_id:
                return order
        return None

    async def create_payment(self, order: SimpleNamespace, **values) -> dict[str, Any]:
        if self.fail_recording:
            raise _db_error()
        payment = {"order_id": order.id, **values}
        self.payments.append(payment)
        return payment

    async def mark_order_paid(
        self,
        order: SimpleNamespace,
        payment_key: str,
        payment_method: str | None,
        paid_at: datetime,
    ) -> SimpleNamespace:
        order.status = OrderStatusEnum.PAID
        order.payment_key = payment_key
        order.payment_method = payment_method
        order.paid_at = paid_at
        return order


class FakeEnrollmentsRepository:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.created: list[dict[str, Any]] = []

    async def create_enrollment(
        self,
        user_id: UUID,
        course_id: UUID,
        enrolled_at: datetime,
        order_id: UUID | None = None,
    ) -> SimpleNamespace:
        if self.error is not None:
            raise self.error
        self.created.append({"user_id": user_id, "course_id": course_id, "order_id": order_id})
        return SimpleNamespace(id=uuid4())


class FakeNotificationsRepository:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.created: list[dict[str, Any]] = []

    async def create_notification(self, **values) -> SimpleNamespace:
        if self.fail:
            raise _db_error()
        self.created.append(values)
        return SimpleNamespace(id=uuid4(), **values)


def _service(
    order: SimpleNamespace,
    gateway: FakeGateway | None = None,
    enrollments: FakeEnrollmentsRepository | None = None,
    notifications: FakeNotificationsRepository | None = None,
) -> tuple[PaymentsService, FakeOrdersRepository]:
    orders = FakeOrdersRepository([order])
    service = PaymentsService(
        gateway=gateway or FakeGateway(),
        orders_repository=orders,
        enrollments_repository=enrollments or FakeEnrollmentsRepository(),
        notifications_repository=notifications or FakeNotificationsRepository(),
    )
    return service, orders


@pytest.mark.asyncio
async def test_confirm_settles_order_enrolls_and_notifies_buyer() -> None:
    order = _order()
    enrollments = FakeEnrollmentsRepository()
    notifications = FakeNotificationsRepository()
    service, orders = _service(order, enrollments=enrollments, notifications=notifications)

    outcome = await service.confirm_payment("pay_test_key", GATEWAY_ORDER_ID, 50000)

    assert outcome.degraded is False
    assert outcome.result.enrolled is True
    assert order.status == OrderStatusEnum.PAID
    assert order.payment_method == "카드"
    assert orders.payments[0]["amount"] == 50000
    assert orders.payments[0]["approved_at"] == datetime(2026, 5, 1, 1, 0, 5, tzinfo=UTC)
    assert enrollments.created == [{"user_id": order.user_id, "course_id": order.course_id, "order_id": order.id}]
    assert [item["type"] for item in notifications.created] == [
        NotificationTypeEnum.PAYMENT_SUCCESS,
        NotificationTypeEnum.ENROLLMENT_SUCCESS,
    ]
    assert "50,000원" in notifications.created[0]["message"]
    assert orders.locked_lookups == [GATEWAY_ORDER_ID]


@pytest.mark.asyncio
async def test_amount_mismatch_is_rejected_before_gateway_call() -> None:
    gateway = FakeGateway()
    service, _ = _service(_order(amount=50000), gateway=gateway)

    with pytest.raises(ValidationException):
        await service.confirm_payment("pay_test_key", GATEWAY_ORDER_ID, 100)
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_unknown_order_is_not_found() -> None:
    service, _ = _service(_order())

    with pytest.raises(NotFoundException):
        await service.confirm_payment("pay_test_key", "LVUP-unknown", 50000)


@pytest.mark.asyncio
async def test_already_paid_order_is_not_charged_again() -> None:
    gateway = FakeGateway()
    service, orders = _service(_order(status=OrderStatusEnum.DONE), gateway=gateway)

    outcome = await service.confirm_payment("pay_test_key", GATEWAY_ORDER_ID, 50000)

    assert outcome.result.already_confirmed is True
    assert gateway.calls == []
    assert orders.payments == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payment_key", "order_id", "amount"),
    [(None, GATEWAY_ORDER_ID, 50000), ("pay_test_key", None, 50000), ("pay_test_key", GATEWAY_ORDER_ID, None)],
)
async def test_missing_confirm_fields_are_rejected(payment_key, order_id, amount) -> None:
    service, _ = _service(_order())

    with pytest.raises(ValidationException):
        await service.confirm_payment(payment_key, order_id, amount)


@pytest.mark.asyncio
async def test_gateway_rejection_leaves_order_pending() -> None:
    order = _order()
    gateway = FakeGateway(error=PaymentGatewayException("카드 한도 초과", status_code=400, code="EXCEED_LIMIT"))
    service, orders = _service(order, gateway=gateway)

    with pytest.raises(PaymentGatewayException) as exc:
        await service.confirm_payment("pay_test_key", GATEWAY_ORDER_ID, 50000)

    assert exc.value.status_code == 400
    assert order.status == OrderStatusEnum.PENDING
    assert orders.payments == []


@pytest.mark.asyncio
async def test_recording_failure_after_approval_is_internal_error() -> None:
    order = _order()
    service, orders = _service(order)
    orders.fail_recording = True

    with pytest.raises(InternalException) as exc:
        await service.confirm_payment("pay_test_key", GATEWAY_ORDER_ID, 50000)
    assert exc.value.message == "결제 정보 저장에 실패했습니다."


@pytest.mark.asyncio
async def test_secondary_failures_are_reported_as_warnings() -> None:
    order = _order()
    service, _ = _service(
        order,
        enrollments=FakeEnrollmentsRepository(error=_db_error()),
        notifications=FakeNotificationsRepository(fail=True),
    )

    outcome = await service.confirm_payment("pay_test_key", GATEWAY_ORDER_ID, 50000)

    assert order.status == OrderStatusEnum.PAID
    assert outcome.result.enrolled is False
    assert outcome.warnings == [
        "enrollment failed",
        f"{NotificationTypeEnum.PAYMENT_SUCCESS} notification failed",
    ]


@pytest.mark.asyncio
async def test_existing_enrollment_skips_enrollment_notification() -> None:
    notifications = FakeNotificationsRepository()
    service, _ = _service(
        _order(),
        enrollments=FakeEnrollmentsRepository(error=DuplicateEntityError("exists")),
        notifications=notifications,
    )

    outcome = await service.confirm_payment("pay_test_key", GATEWAY_ORDER_ID, 50000)

    assert outcome.warnings == ["already enrolled"]
    assert [item["type"] for item in notifications.created] == [NotificationTypeEnum.PAYMENT_SUCCESS]


@pytest.mark.asyncio
async def test_toss_client_posts_confirm_with_basic_auth() -> None:
    captured: dict[str, Any] = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["authorization"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_approved_payment())

    client = TossPaymentsClient(
        secret_key="test_sk_123",
        base_url="https://api.tosspayments.com/",
        timeout_seconds=5,
        transport=httpx.MockTransport(_handler),
    )

    payload = await client.confirm("pay_test_key", GATEWAY_ORDER_ID, 50000)

    expected_token = base64.b64encode(b"test_sk_123:").decode("ascii")
    assert payload["status"] == "DONE"
    assert captured["url"] == "https://api.tosspayments.com/v1/payments/confirm"
    assert captured["authorization"] == f"Basic {expected_token}"
    assert captured["body"] == {"paymentKey": "pay_test_key", "orderId": GATEWAY_ORDER_ID, "amount": 50000}


@pytest.mark.asyncio
async def test_toss_client_maps_gateway_errors() -> None:
    def _handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": "ALREADY_PROCESSED_PAYMENT", "message": "이미 처리된 결제 입니다."})

    client = TossPaymentsClient("test_sk_123", "https://api.tosspayments.com", 5, transport=httpx.MockTransport(_handler))

    with pytest.raises(PaymentGatewayException) as exc:
        await client.confirm("pay_test_key", GATEWAY_ORDER_ID, 50000)

    assert exc.value.status_code == 400
    assert exc.value.code == "ALREADY_PROCESSED_PAYMENT"
    assert exc.value.message == "이미 처리된 결제 입니다."


@pytest.mark.asyncio
async def test_toss_client_network_failure_is_bad_gateway() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = TossPaymentsClient("test_sk_123", "https://api.tosspayments.com", 5, transport=httpx.MockTransport(_handler))

    with pytest.raises(PaymentGatewayException) as exc:
        await client.confirm("pay_test_key", GATEWAY_ORDER_ID, 50000)
    assert exc.value.status_code == 502


def test_price_formatting_uses_thousands_separators() -> None:
    assert format_price(1250000) == "1,250,000"
    assert format_price(0) == "0"


@pytest.mark.asyncio
async def test_toss_client_reuses_one_connection_pool() -> None:
    calls: list[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=_approved_payment())

    client = TossPaymentsClient("test_sk_123", "https://api.tosspayments.com", 5, transport=httpx.MockTransport(_handler))

    await client.confirm("pay_first", GATEWAY_ORDER_ID, 50000)
    await client.confirm("pay_second", GATEWAY_ORDER_ID, 50000)

    assert calls == ["/v1/payments/confirm", "/v1/payments/confirm"]
    assert client.is_closed is False
    await client.aclose()
    assert client.is_closed is True


@pytest.mark.asyncio
async def test_toss_client_rejects_non_object_success_body() -> None:
    def _handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["DONE"])

    client = TossPaymentsClient("test_sk_123", "https://api.tosspayments.com", 5, transport=httpx.MockTransport(_handler))

    with pytest.raises(PaymentGatewayException) as exc:
        await client.confirm("pay_test_key", GATEWAY_ORDER_ID, 50000)
    assert exc.value.status_code == 502
    await client.aclose()


def test_toss_client_is_not_built_without_secret_key() -> None:
    assert build_toss_client(Settings(_env_file=None, toss_secret_key=None)) is None
    client = build_toss_client(Settings(_env_file=None, toss_secret_key="test_sk_123"))
    assert isinstance(client, TossPaymentsClient)
