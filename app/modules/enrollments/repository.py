"""Enrollment repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import insert_unique
from app.core.enums import EnrollmentStatusEnum
from app.modules.enrollments.models import Enrollment


class EnrollmentsRepository:
    """DB operations for enrollments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_active_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        stmt = select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
            Enrollment.status == EnrollmentStatusEnum.ACTIVE,
        )
        return await self.session.scalar(stmt)

    async def get_enrollment_for_user(self, enrollment_id: UUID, user_id: UUID) -> Enrollment | None:
        stmt = select(Enrollment).where(Enrollment.id == enrollment_id, Enrollment.user_id == user_id)
        return await self.session.scalar(stmt)

    async def create_enrollment(
        self,
        user_id: UUID,
        course_id: UUID,
        enrolled_at: datetime,
        order_id: UUID | None = None,
    ) -> Enrollment:
        """Insert ACTIVE enrollment; the partial unique index arbitrates duplicates."""
        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            order_id=order_id,
            status=EnrollmentStatusEnum.ACTIVE,
            progress=0,
            enrolled_at=enrolled_at,
        )
        return await insert_unique(self.session, enrollment, "Active enrollment already exists")

    async def mark_completed(self, enrollment: Enrollment, completed_at: datetime) -> Enrollment:
        async with self.session.begin_nested():
            enrollment.status = EnrollmentStatusEnum.COMPLETED
            enrollment.completed_at = completed_at
            await self.session.flush()
        return enrollment
