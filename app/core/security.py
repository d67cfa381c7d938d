"""Verification of access tokens issued by the external auth provider."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from app.core.config import get_settings
from app.shared.exceptions import AuthException

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate provider-signed JWT."""
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as exc:
        raise AuthException("인증이 필요합니다.") from exc


def subject_from_token(token: str) -> UUID:
    """Return the user id carried in the token subject."""
    payload = decode_token(token)
    subject = payload.get("sub")
    if not subject:
        raise AuthException("인증이 필요합니다.")
    try:
        return UUID(str(subject))
    except ValueError as exc:
        raise AuthException("인증이 필요합니다.") from exc
