"""Certificate repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import insert_unique
from app.modules.certificates.models import Certificate, certificate_number_seq
from app.shared.utils import utc_now


class CertificatesRepository:
    """DB operations for certificates."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_certificate_for_course(self, user_id: UUID, course_id: UUID) -> Certificate | None:
        stmt = select(Certificate).where(Certificate.user_id == user_id, Certificate.course_id == course_id)
        return await self.session.scalar(stmt)

    async def create_certificate(
        self,
        user_id: UUID,
        course_id: UUID,
        enrollment_id: UUID,
        certificate_number: str,
        details: dict,
    ) -> Certificate:
        certificate = Certificate(
            user_id=user_id,
            course_id=course_id,
            enrollment_id=enrollment_id,
            certificate_number=certificate_number,
            details=details,
        )
        return await insert_unique(self.session, certificate, "Certificate already issued")


class SequenceCertificateNumberIssuer:
    """Certificate numbers drawn from a Postgres sequence: LVUP-CERT-<year>-<6 digits>."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def next(self) -> str:
        value = await self.session.scalar(select(certificate_number_seq.next_value()))
        if value is None:
            return ""
        return f"LVUP-CERT-{utc_now().year}-{int(value):06d}"
