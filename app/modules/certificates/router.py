"""Certificates API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.modules.certificates.schemas import CertificateIssueRequest, CertificateIssueResponse
from app.modules.certificates.service import CertificatesService, get_certificates_service
from app.modules.identity.service import get_optional_user_id

router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.post("/issue", response_model=CertificateIssueResponse)
async def issue_certificate(
    payload: CertificateIssueRequest,
    service: CertificatesService = Depends(get_certificates_service),
    actor_id: UUID | None = Depends(get_optional_user_id),
) -> CertificateIssueResponse:
    """Issue (or return the already issued) completion certificate."""
    outcome = await service.issue_certificate(
        enrollment_id=payload.enrollment_id,
        user_id=payload.user_id,
        course_id=payload.course_id,
        actor_id=actor_id,
    )
    result = outcome.result
    return CertificateIssueResponse(
        certificate_id=result.certificate_id,
        certificate_number=result.certificate_number,
        message=result.message,
    )
