"""Certificate issuance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.capabilities import CertificateNumberIssuer
from app.core.database import get_db_session
from app.core.enums import EnrollmentStatusEnum
from app.modules.certificates.models import Certificate
from app.modules.certificates.repository import CertificatesRepository, SequenceCertificateNumberIssuer
from app.modules.enrollments.repository import EnrollmentsRepository
from app.shared.exceptions import (
    AuthException,
    DuplicateEntityError,
    InternalException,
    NotFoundException,
    PreconditionException,
    ValidationException,
)
from app.shared.outcome import Outcome
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

COMPLETION_PROGRESS = 100

ISSUED_MESSAGE = "수료증이 성공적으로 발급되었습니다."
ALREADY_ISSUED_MESSAGE = "이미 발급된 수료증이 있습니다."


@dataclass(slots=True)
class CertificateIssueResult:
    certificate_id: UUID
    certificate_number: str
    message: str
    already_issued: bool = False


class CertificatesService:
    """Issue at most one certificate per (user, course)."""

    def __init__(
        self,
        repository: CertificatesRepository,
        enrollments_repository: EnrollmentsRepository,
        number_issuer: CertificateNumberIssuer,
    ) -> None:
        self.repository = repository
        self.enrollments_repository = enrollments_repository
        self.number_issuer = number_issuer

    async def issue_certificate(
        self,
        enrollment_id: UUID | None,
        user_id: UUID | None,
        course_id: UUID | None,
        actor_id: UUID | None,
    ) -> Outcome[CertificateIssueResult]:
        """Issue a certificate once the enrollment is complete.

        Repeated calls for the same (user, course) return the existing
        certificate. Syncing the enrollment to COMPLETED afterwards is
        best-effort and reported as a warning when it fails.
        """
        if enrollment_id is None or user_id is None or course_id is None:
            raise ValidationException("필수 정보가 누락되었습니다.")

        if actor_id is None or actor_id != user_id:
            raise AuthException("인증되지 않은 요청입니다.")

        enrollment = await self.enrollments_repository.get_enrollment_for_user(enrollment_id, user_id)
        if enrollment is None:
            raise NotFoundException("수강 정보를 찾을 수 없습니다.")
        if enrollment.course_id != course_id:
            raise NotFoundException("해당 강의의 수강 정보가 아닙니다.")

        was_completed = enrollment.status == EnrollmentStatusEnum.COMPLETED
        if enrollment.progress < COMPLETION_PROGRESS and not was_completed:
            raise PreconditionException("아직 코스를 완료하지 않았습니다.")

        existing = await self.repository.get_certificate_for_course(user_id, course_id)
        if existing is not None:
            return Outcome(result=self._already_issued(existing))

        try:
            certificate_number = await self.number_issuer.next()
        except SQLAlchemyError as exc:
            logger.exception("Certificate number generation failed")
            raise InternalException("수료증 번호 생성에 실패했습니다.") from exc
        if not certificate_number:
            raise InternalException("수료증 번호 생성에 실패했습니다.")

        now = utc_now()
        completion_date = enrollment.completed_at or now
        try:
            certificate = await self.repository.create_certificate(
                user_id=user_id,
                course_id=course_id,
                enrollment_id=enrollment_id,
                certificate_number=certificate_number,
                details={
                    "completion_date": completion_date.isoformat(),
                    "progress": enrollment.progress,
                },
            )
        except DuplicateEntityError:
            # Lost a race with a concurrent request: the stored row wins.
            existing = await self.repository.get_certificate_for_course(user_id, course_id)
            if existing is None:
                logger.exception("Certificate insert rejected without an existing row")
                raise InternalException("수료증 발급에 실패했습니다.")
            return Outcome(result=self._already_issued(existing))
        except SQLAlchemyError as exc:
            logger.exception("Certificate insert failed for enrollment %s", enrollment_id)
            raise InternalException("수료증 발급에 실패했습니다.") from exc

        outcome = Outcome(
            result=CertificateIssueResult(
                certificate_id=certificate.id,
                certificate_number=certificate.certificate_number,
                message=ISSUED_MESSAGE,
            ),
        )
        if not was_completed:
            try:
                await self.enrollments_repository.mark_completed(enrollment, now)
            except SQLAlchemyError:
                logger.warning("Enrollment %s completion sync failed", enrollment_id, exc_info=True)
                outcome.warn("enrollment completion sync failed")
        return outcome

    @staticmethod
    def _already_issued(certificate: Certificate) -> CertificateIssueResult:
        return CertificateIssueResult(
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            message=ALREADY_ISSUED_MESSAGE,
            already_issued=True,
        )


async def get_certificates_service(session: AsyncSession = Depends(get_db_session)) -> CertificatesService:
    """Dependency provider for certificates service."""
    return CertificatesService(
        repository=CertificatesRepository(session),
        enrollments_repository=EnrollmentsRepository(session),
        number_issuer=SequenceCertificateNumberIssuer(session),
    )
