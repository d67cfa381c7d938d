from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.modules.orders.schemas import OrderDetailRead, OrderListItemRead
from app.modules.orders.service import OrdersService
from app.shared.exceptions import (
    AuthException,
    ForbiddenException,
    InternalException,
    NotFoundException,
    ValidationException,
)
from app.shared.pagination import PaginationParams, build_page_info, coerce_positive_int

BASE_TIME = datetime(2026, 3, 1, tzinfo=UTC)


def _db_error() -> OperationalError:
    return OperationalError("SELECT", {}, Exception("connection lost"))


def _order(user_id: UUID, index: int) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        user_id=user_id,
        order_number=f"LVUP-{1700000000000 + index}-ABC{index:03d}",
        order_id=f"LVUP-{1700000000000 + index}-{user_id.hex[:8]}-abc{index:03d}",
        amount=50000,
        original_amount=60000,
        discount_amount=10000,
        status="PENDING" if index % 2 else "DONE",
        payment_method=None if index % 2 else "카드",
        payment_key=None,
        created_at=BASE_TIME + timedelta(minutes=index),
        paid_at=None,
        course=SimpleNamespace(
            id=uuid4(),
            title=f"강의 {index}",
            thumbnail=None,
            description="설명",
            instructor=SimpleNamespace(name="김강사"),
        ),
        payments=[],
    )


class FakeOrdersRepository:
    def __init__(self, orders: list[SimpleNamespace], count_error: Exception | None = None) -> None:
        self._orders = orders
        self.count_error = count_error
        self.list_error: Exception | None = None
        self.detail_error: Exception | None = None

    async def list_orders_for_user(self, user_id: UUID, limit: int, offset: int) -> list[SimpleNamespace]:
        if self.list_error is not None:
            raise self.list_error
        owned = sorted(
            (order for order in self._orders if order.user_id == user_id),
            key=lambda order: order.created_at,
            reverse=True,
        )
        return owned[offset : offset + limit]

    async def count_orders_for_user(self, user_id: UUID) -> int:
        if self.count_error is not None:
            raise self.count_error
        return sum(1 for order in self._orders if order.user_id == user_id)

    async def get_order_detail(self, order_id: UUID, user_id: UUID) -> SimpleNamespace | None:
        if self.detail_error is not None:
            raise self.detail_error
        for order in self._orders:
            if order.id == order_id and order.user_id == user_id:
                return order
        return None


def _service(repository: FakeOrdersRepository) -> OrdersService:
    return OrdersService(
        repository=repository,
        courses_repository=SimpleNamespace(),
        enrollments_repository=SimpleNamespace(),
    )


@pytest.mark.asyncio
async def test_list_orders_paginates_newest_first() -> None:
    user_id = uuid4()
    orders = [_order(user_id, index) for index in range(23)]
    orders.append(_order(uuid4(), 99))
    service = _service(FakeOrdersRepository(orders))
    params = PaginationParams(page=3, limit=10)

    outcome = await service.list_orders(user_id, user_id, params)

    items, total = outcome.result
    assert total == 23
    assert len(items) == 3
    assert [item.created_at for item in items] == sorted((item.created_at for item in items), reverse=True)
    assert outcome.degraded is False

    page_info = build_page_info(total, params)
    assert page_info.total_pages == 3
    assert page_info.model_dump(by_alias=True)["totalPages"] == 3


@pytest.mark.asyncio
async def test_list_orders_count_failure_degrades_to_zero_total() -> None:
    user_id = uuid4()
    orders = [_order(user_id, index) for index in range(4)]
    service = _service(FakeOrdersRepository(orders, count_error=_db_error()))

    outcome = await service.list_orders(user_id, user_id, PaginationParams(page=1, limit=10))

    items, total = outcome.result
    assert len(items) == 4
    assert total == 0
    assert outcome.degraded is True
    assert outcome.warnings == ["order count unavailable"]


@pytest.mark.asyncio
async def test_list_orders_requires_user_id() -> None:
    service = _service(FakeOrdersRepository([]))

    with pytest.raises(ValidationException) as exc:
        await service.list_orders(None, uuid4(), PaginationParams(page=1, limit=10))
    assert exc.value.message == "사용자 ID가 필요합니다."


@pytest.mark.asyncio
async def test_list_orders_requires_authenticated_caller() -> None:
    service = _service(FakeOrdersRepository([]))

    with pytest.raises(AuthException):
        await service.list_orders(uuid4(), None, PaginationParams(page=1, limit=10))


@pytest.mark.asyncio
async def test_list_orders_of_another_user_is_forbidden() -> None:
    service = _service(FakeOrdersRepository([]))

    with pytest.raises(ForbiddenException) as exc:
        await service.list_orders(uuid4(), uuid4(), PaginationParams(page=1, limit=10))
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_list_orders_fetch_failure_is_internal_error() -> None:
    user_id = uuid4()
    repository = FakeOrdersRepository([])
    repository.list_error = _db_error()
    service = _service(repository)

    with pytest.raises(InternalException) as exc:
        await service.list_orders(user_id, user_id, PaginationParams(page=1, limit=10))
    assert exc.value.message == "주문 내역을 불러오는데 실패했습니다."


@pytest.mark.asyncio
async def test_get_order_returns_only_callers_order() -> None:
    owner_id = uuid4()
    order = _order(owner_id, 0)
    service = _service(FakeOrdersRepository([order]))

    assert await service.get_order(order.id, owner_id) is order
    with pytest.raises(NotFoundException) as exc:
        await service.get_order(order.id, uuid4())
    assert exc.value.message == "주문을 찾을 수 없습니다."


@pytest.mark.asyncio
async def test_get_order_store_failure_is_internal_error() -> None:
    repository = FakeOrdersRepository([])
    repository.detail_error = _db_error()
    service = _service(repository)

    with pytest.raises(InternalException) as exc:
        await service.get_order(uuid4(), uuid4())
    assert exc.value.message == "주문 상세 정보를 불러오는데 실패했습니다."


def test_order_detail_exposes_display_texts_and_hides_owner() -> None:
    order = _order(uuid4(), 0)
    order.payments = [
        SimpleNamespace(
            id=uuid4(),
            method="카드",
            amount=50000,
            status="DONE",
            approved_at=BASE_TIME,
            raw_data={"method": "카드"},
        ),
    ]

    payload = OrderDetailRead.model_validate(order).model_dump()

    assert payload["status_text"] == "결제 완료"
    assert payload["payment_method_text"] == "신용/체크카드"
    assert payload["course"]["instructor"]["name"] == "김강사"
    assert "user_id" not in payload


def test_unknown_status_is_displayed_verbatim() -> None:
    order = _order(uuid4(), 1)
    order.status = "SETTLING"

    payload = OrderListItemRead.model_validate(order).model_dump()

    assert payload["status_text"] == "SETTLING"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 10), ("abc", 10), ("0", 10), ("-3", 10), ("7", 7), (" 4 ", 4)],
)
def test_pagination_values_fall_back_to_defaults(value: str | None, expected: int) -> None:
    assert coerce_positive_int(value, 10) == expected


def test_pagination_limit_is_capped() -> None:
    assert coerce_positive_int("500", 20, maximum=50) == 50
