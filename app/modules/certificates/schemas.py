"""Certificate schemas."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CertificateIssueRequest(BaseModel):
    """Issue request. Missing ids are reported by the service as 400."""

    model_config = ConfigDict(populate_by_name=True)

    enrollment_id: UUID | None = Field(default=None, alias="enrollmentId")
    user_id: UUID | None = Field(default=None, alias="userId")
    course_id: UUID | None = Field(default=None, alias="courseId")


class CertificateIssueResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    certificate_id: UUID = Field(alias="certificateId")
    certificate_number: str = Field(alias="certificateNumber")
    message: str
