"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """User roles assigned by the identity provider."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class EnrollmentStatusEnum(StrEnum):
    """Enrollment lifecycle status."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class OrderStatusEnum(StrEnum):
    """Order statuses known to the service.

    The column itself is a plain string: the payment gateway owns the
    vocabulary and may report values that are not listed here.
    """

    PENDING = "PENDING"
    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_FOR_DEPOSIT = "WAITING_FOR_DEPOSIT"
    DONE = "DONE"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    PARTIAL_CANCELED = "PARTIAL_CANCELED"
    ABORTED = "ABORTED"
    EXPIRED = "EXPIRED"


PAID_ORDER_STATUSES: frozenset[str] = frozenset(
    {OrderStatusEnum.PAID, OrderStatusEnum.DONE, OrderStatusEnum.COMPLETED},
)


class NotificationTypeEnum(StrEnum):
    """Notification kinds emitted by the coordinator."""

    PAYMENT_SUCCESS = "payment_success"
    ENROLLMENT_SUCCESS = "enrollment_success"
