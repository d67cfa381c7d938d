"""Payment confirmation: gateway approval followed by order and enrollment updates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.capabilities import NotificationStore
from app.core.database import get_db_session
from app.core.enums import PAID_ORDER_STATUSES, NotificationTypeEnum
from app.modules.enrollments.repository import EnrollmentsRepository
from app.modules.notifications.repository import NotificationsRepository
from app.modules.orders.models import Order
from app.modules.orders.repository import OrdersRepository
from app.modules.payments.gateway import TossPaymentsClient, format_price, get_toss_client
from app.shared.exceptions import DuplicateEntityError, InternalException, NotFoundException, ValidationException
from app.shared.outcome import Outcome
from app.shared.utils import parse_iso_datetime, utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PaymentConfirmation:
    order: Order
    payment: dict[str, Any] | None
    already_confirmed: bool = False
    enrolled: bool = False


class PaymentsService:
    """Confirm hosted-checkout payments against pending orders."""

    def __init__(
        self,
        gateway: TossPaymentsClient,
        orders_repository: OrdersRepository,
        enrollments_repository: EnrollmentsRepository,
        notifications_repository: NotificationStore,
    ) -> None:
        self.gateway = gateway
        self.orders_repository = orders_repository
        self.enrollments_repository = enrollments_repository
        self.notifications_repository = notifications_repository

    async def confirm_payment(
        self,
        payment_key: str | None,
        order_id: str | None,
        amount: int | None,
    ) -> Outcome[PaymentConfirmation]:
        """Approve the payment and settle the order.

        The order is checked before the gateway is called, so an unknown
        order or a tampered amount is never charged and a settled order is
        never charged twice. Enrollment and notifications afterwards are
        best-effort.
        """
        if not payment_key or not order_id or amount is None:
            raise ValidationException("필수 정보가 누락되었습니다.")

        order = await self.orders_repository.get_order_by_gateway_id(order_id, for_update=True)
        if order is None:
            raise NotFoundException("주문 정보를 찾을 수 없습니다.")

        if order.status in PAID_ORDER_STATUSES:
            return Outcome(result=PaymentConfirmation(order=order, payment=None, already_confirmed=True))

        if amount != order.amount:
            raise ValidationException("결제 금액이 주문 금액과 일치하지 않습니다.")

        payment_data = await self.gateway.confirm(payment_key, order_id, amount)

        paid_at = utc_now()
        try:
            await self.orders_repository.create_payment(
                order=order,
                payment_key=payment_key,
                gateway_order_id=order_id,
                method=payment_data.get("method"),
                amount=int(payment_data.get("totalAmount") or amount),
                status=str(payment_data.get("status") or "DONE"),
                requested_at=parse_iso_datetime(payment_data.get("requestedAt")),
                approved_at=parse_iso_datetime(payment_data.get("approvedAt")),
                raw_data=payment_data,
            )
            await self.orders_repository.mark_order_paid(
                order,
                payment_key=payment_key,
                payment_method=payment_data.get("method"),
                paid_at=paid_at,
            )
        except SQLAlchemyError as exc:
            logger.exception("Approved payment %s could not be recorded for order %s", payment_key, order_id)
            raise InternalException("결제 정보 저장에 실패했습니다.") from exc

        outcome = Outcome(result=PaymentConfirmation(order=order, payment=payment_data))
        outcome.result.enrolled = await self._enroll_buyer(order, outcome)
        await self._notify_buyer(order, payment_data, outcome)
        return outcome

    async def _enroll_buyer(self, order: Order, outcome: Outcome[PaymentConfirmation]) -> bool:
        try:
            await self.enrollments_repository.create_enrollment(
                user_id=order.user_id,
                course_id=order.course_id,
                enrolled_at=utc_now(),
                order_id=order.id,
            )
        except DuplicateEntityError:
            logger.warning("Order %s paid for a course the user is already enrolled in", order.id)
            outcome.warn("already enrolled")
            return False
        except SQLAlchemyError:
            logger.warning("Enrollment after payment failed for order %s", order.id, exc_info=True)
            outcome.warn("enrollment failed")
            return False
        return True

    async def _notify_buyer(
        self,
        order: Order,
        payment_data: dict[str, Any],
        outcome: Outcome[PaymentConfirmation],
    ) -> None:
        course_title = order.course.title if order.course is not None else "강의"
        total_amount = int(payment_data.get("totalAmount") or order.amount)
        messages = [
            (
                NotificationTypeEnum.PAYMENT_SUCCESS,
                "결제가 완료되었습니다",
                f"{course_title} 결제({format_price(total_amount)}원)가 성공적으로 완료되었습니다. "
                "이제 수강을 시작할 수 있습니다.",
                {
                    "order_id": str(order.id),
                    "course_id": str(order.course_id),
                    "course_title": course_title,
                    "payment_amount": total_amount,
                    "payment_method": payment_data.get("method"),
                },
            ),
        ]
        if outcome.result.enrolled:
            messages.append(
                (
                    NotificationTypeEnum.ENROLLMENT_SUCCESS,
                    "수강 등록이 완료되었습니다",
                    f"{course_title} 수강 등록이 완료되었습니다. 지금 바로 학습을 시작해보세요!",
                    {
                        "order_id": str(order.id),
                        "course_id": str(order.course_id),
                        "course_title": course_title,
                    },
                ),
            )

        for notification_type, title, message, data in messages:
            try:
                await self.notifications_repository.create_notification(
                    user_id=order.user_id,
                    type=notification_type,
                    title=title,
                    message=message,
                    data=data,
                )
            except SQLAlchemyError:
                logger.warning("Notification %s failed for order %s", notification_type, order.id, exc_info=True)
                outcome.warn(f"{notification_type} notification failed")


async def get_payments_service(
    session: AsyncSession = Depends(get_db_session),
    gateway: TossPaymentsClient = Depends(get_toss_client),
) -> PaymentsService:
    """Dependency provider for payments service."""
    return PaymentsService(
        gateway=gateway,
        orders_repository=OrdersRepository(session),
        enrollments_repository=EnrollmentsRepository(session),
        notifications_repository=NotificationsRepository(session),
    )
