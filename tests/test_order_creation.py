from __future__ import annotations

import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

import app.modules.orders.service as orders_service_module
from app.core.enums import EnrollmentStatusEnum, OrderStatusEnum
from app.modules.enrollments.repository import EnrollmentsRepository
from app.modules.orders.service import OrdersService
from app.modules.payments.gateway import generate_order_id, generate_order_number
from app.shared.exceptions import (
    ConflictException,
    DuplicateEntityError,
    InternalException,
    NotFoundException,
    ValidationException,
)

FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
ORDER_NUMBER_PATTERN = re.compile(r"^LVUP-\d+-[0-9A-Z]{6}$")


@dataclass
class FakeEnrollment:
    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: datetime
    order_id: UUID | None = None
    status: EnrollmentStatusEnum = EnrollmentStatusEnum.ACTIVE
    progress: int = 0
    completed_at: datetime | None = None


@dataclass
class FakeOrder:
    id: UUID
    user_id: UUID
    course_id: UUID
    order_number: str
    order_id: str
    amount: int
    original_amount: int
    discount_amount: int
    status: str = OrderStatusEnum.PENDING
    created_at: datetime = FIXED_NOW


class FakeCoursesRepository:
    def __init__(self, courses: list[SimpleNamespace]) -> None:
        self._courses = {course.id: course for course in courses}

    async def get_course_by_id(self, course_id: UUID) -> SimpleNamespace | None:
        return self._courses.get(course_id)


class FakeEnrollmentsRepository:
    """In-memory store that enforces one ACTIVE enrollment per (user, course)."""

    def __init__(self, skip_fast_path: bool = False) -> None:
        self.enrollments: list[FakeEnrollment] = []
        self.skip_fast_path = skip_fast_path

    def _active(self, user_id: UUID, course_id: UUID) -> FakeEnrollment | None:
        for enrollment in self.enrollments:
            if (
                enrollment.user_id == user_id
                and enrollment.course_id == course_id
                and enrollment.status == EnrollmentStatusEnum.ACTIVE
            ):
                return enrollment
        return None

    async def get_active_enrollment(self, user_id: UUID, course_id: UUID) -> FakeEnrollment | None:
        if self.skip_fast_path:
            return None
        return self._active(user_id, course_id)

    async def create_enrollment(
        self,
        user_id: UUID,
        course_id: UUID,
        enrolled_at: datetime,
        order_id: UUID | None = None,
    ) -> FakeEnrollment:
        if self._active(user_id, course_id) is not None:
            raise DuplicateEntityError("Active enrollment already exists")
        enrollment = FakeEnrollment(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            enrolled_at=enrolled_at,
            order_id=order_id,
        )
        self.enrollments.append(enrollment)
        return enrollment


@dataclass
class FakeOrdersRepository:
    orders: list[FakeOrder] = field(default_factory=list)
    fail_with: Exception | None = None

    async def create_order(self, **values) -> FakeOrder:
        if self.fail_with is not None:
            raise self.fail_with
        order = FakeOrder(id=uuid4(), **values)
        self.orders.append(order)
        return order


def _course(price: int, original_price: int | None = None, is_free: bool = False) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        title="실전 웹 개발",
        price=price,
        original_price=original_price,
        is_free=is_free,
    )


def _service(
    courses: list[SimpleNamespace],
    enrollments: FakeEnrollmentsRepository | None = None,
    orders: FakeOrdersRepository | None = None,
) -> OrdersService:
    return OrdersService(
        repository=orders or FakeOrdersRepository(),
        courses_repository=FakeCoursesRepository(courses),
        enrollments_repository=enrollments or FakeEnrollmentsRepository(),
    )


@pytest.fixture(autouse=True)
def _fixed_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(orders_service_module, "utc_now", lambda: FIXED_NOW)


@pytest.mark.asyncio
async def test_free_course_enrolls_directly_without_order() -> None:
    course = _course(price=0, is_free=True)
    enrollments = FakeEnrollmentsRepository()
    orders = FakeOrdersRepository()
    service = _service([course], enrollments, orders)
    user_id = uuid4()

    result = await service.create_order(course.id, user_id)

    assert result.is_free is True
    assert result.order is None
    assert result.enrollment is not None
    assert result.enrollment.status == EnrollmentStatusEnum.ACTIVE
    assert result.enrollment.progress == 0
    assert result.enrollment.enrolled_at == FIXED_NOW
    assert orders.orders == []


@pytest.mark.asyncio
async def test_second_free_enrollment_for_same_pair_is_conflict() -> None:
    course = _course(price=0, is_free=True)
    enrollments = FakeEnrollmentsRepository()
    service = _service([course], enrollments)
    user_id = uuid4()

    await service.create_order(course.id, user_id)
    with pytest.raises(ConflictException) as exc:
        await service.create_order(course.id, user_id)

    assert exc.value.status_code == 400
    assert exc.value.message == "이미 수강 중인 강의입니다."
    assert len(enrollments.enrollments) == 1


@pytest.mark.asyncio
async def test_concurrent_free_enrollment_rejected_by_store_is_conflict() -> None:
    course = _course(price=0, is_free=True)
    enrollments = FakeEnrollmentsRepository(skip_fast_path=True)
    service = _service([course], enrollments)
    user_id = uuid4()

    await service.create_order(course.id, user_id)
    with pytest.raises(ConflictException):
        await service.create_order(course.id, user_id)

    assert len(enrollments.enrollments) == 1


class _DriverError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(f"driver error {sqlstate}")
        self.sqlstate = sqlstate


class FlushFailingSession:
    """Session stand-in whose flush fails with the given SQLSTATE."""

    def __init__(self, sqlstate: str) -> None:
        self.sqlstate = sqlstate
        self.added: list[object] = []

    async def scalar(self, _stmt) -> None:
        return None

    def add(self, entity: object) -> None:
        self.added.append(entity)

    @asynccontextmanager
    async def _savepoint(self) -> AsyncIterator[None]:
        yield

    def begin_nested(self):
        return self._savepoint()

    async def flush(self) -> None:
        raise IntegrityError("INSERT INTO enrollments", {}, _DriverError(self.sqlstate))


@pytest.mark.asyncio
async def test_enrollment_foreign_key_failure_is_internal_error() -> None:
    course = _course(price=0, is_free=True)
    repository = EnrollmentsRepository(FlushFailingSession("23503"))  # type: ignore[arg-type]
    service = _service([course], repository)  # type: ignore[arg-type]

    with pytest.raises(InternalException) as exc:
        await service.create_order(course.id, uuid4())

    assert exc.value.status_code == 500
    assert exc.value.message == "수강 등록에 실패했습니다."


@pytest.mark.asyncio
async def test_enrollment_unique_violation_from_store_is_conflict() -> None:
    course = _course(price=0, is_free=True)
    repository = EnrollmentsRepository(FlushFailingSession("23505"))  # type: ignore[arg-type]
    service = _service([course], repository)  # type: ignore[arg-type]

    with pytest.raises(ConflictException) as exc:
        await service.create_order(course.id, uuid4())

    assert exc.value.message == "이미 수강 중인 강의입니다."


@pytest.mark.asyncio
async def test_paid_course_opens_pending_order_with_discount() -> None:
    course = _course(price=50000, original_price=60000)
    orders = FakeOrdersRepository()
    service = _service([course], orders=orders)
    user_id = uuid4()

    result = await service.create_order(course.id, user_id)

    assert result.is_free is False
    assert result.enrollment is None
    order = result.order
    assert order is not None
    assert order.amount == 50000
    assert order.original_amount == 60000
    assert order.discount_amount == 10000
    assert order.status == OrderStatusEnum.PENDING
    assert ORDER_NUMBER_PATTERN.match(order.order_number)
    assert user_id.hex[:8] in order.order_id
    assert result.course is course


@pytest.mark.asyncio
async def test_paid_course_without_original_price_has_no_discount() -> None:
    course = _course(price=30000)
    service = _service([course])

    result = await service.create_order(course.id, uuid4())

    assert result.order.original_amount == 30000
    assert result.order.discount_amount == 0


@pytest.mark.asyncio
async def test_paid_course_already_enrolled_is_conflict() -> None:
    course = _course(price=50000)
    enrollments = FakeEnrollmentsRepository()
    user_id = uuid4()
    await enrollments.create_enrollment(user_id, course.id, FIXED_NOW)
    orders = FakeOrdersRepository()
    service = _service([course], enrollments, orders)

    with pytest.raises(ConflictException):
        await service.create_order(course.id, user_id)
    assert orders.orders == []


@pytest.mark.asyncio
async def test_unknown_course_is_not_found() -> None:
    service = _service([])

    with pytest.raises(NotFoundException) as exc:
        await service.create_order(uuid4(), uuid4())
    assert exc.value.message == "강의 정보를 찾을 수 없습니다."


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["course", "user"])
async def test_missing_identifiers_are_rejected(missing: str) -> None:
    course = _course(price=0, is_free=True)
    service = _service([course])
    course_id = None if missing == "course" else course.id
    user_id = None if missing == "user" else uuid4()

    with pytest.raises(ValidationException) as exc:
        await service.create_order(course_id, user_id)
    assert exc.value.message == "필수 정보가 누락되었습니다."


@pytest.mark.asyncio
async def test_order_store_failure_is_internal_error() -> None:
    course = _course(price=50000)
    orders = FakeOrdersRepository(fail_with=OperationalError("INSERT", {}, Exception("down")))
    service = _service([course], orders=orders)

    with pytest.raises(InternalException) as exc:
        await service.create_order(course.id, uuid4())
    assert exc.value.message == "주문 생성에 실패했습니다."


def test_order_numbers_are_well_formed_and_unique() -> None:
    numbers = [generate_order_number() for _ in range(500)]

    assert all(ORDER_NUMBER_PATTERN.match(number) for number in numbers)
    assert len(set(numbers)) == len(numbers)


def test_gateway_order_ids_fit_gateway_constraints() -> None:
    user_id = uuid4()
    order_ids = {generate_order_id(user_id) for _ in range(200)}

    assert len(order_ids) == 200
    for order_id in order_ids:
        assert 6 <= len(order_id) <= 64
        assert re.fullmatch(r"[A-Za-z0-9_-]+", order_id)
        assert user_id.hex[:8] in order_id
