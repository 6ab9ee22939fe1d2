from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from backoffice.auth.context import Principal
from backoffice.core.config import settings
from backoffice.core.errors import AuthenticationError

# auto_error=False: a missing header means "no principal"; the gate reports it.
bearer_scheme = HTTPBearer(auto_error=False)


def _normalize_token(token: str | None) -> str:
    """
    Make token decoding resilient to common copy-paste issues:
    - Leading/trailing whitespace/newlines
    - Surrounding quotes
    - Accidentally including the 'Bearer ' prefix in the token field
    """
    if token is None:
        return ""

    t = token.strip()

    if (t.startswith('"') and t.endswith('"')) or (t.startswith("'") and t.endswith("'")):
        t = t[1:-1].strip()

    if t.lower().startswith("bearer "):
        t = t[7:].strip()

    return t


def _encode(claims: dict[str, Any], expires_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        **claims,
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(
    subject: str | uuid.UUID,
    *,
    email: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    claims: dict[str, Any] = {"sub": str(subject)}
    if email:
        claims["email"] = email
    return _encode(claims, expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def create_impersonation_token(
    *,
    target_user_id: str | uuid.UUID,
    impersonator_id: str | uuid.UUID,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Short-lived token that lets a platform operator act as `target_user_id`.
    Whether `impersonator_id` really is an operator is checked per request.
    """
    claims = {"sub": str(target_user_id), "imp": str(impersonator_id)}
    return _encode(claims, expires_minutes or settings.IMPERSONATION_TOKEN_EXPIRE_MINUTES)


def _uuid_claim(payload: dict[str, Any], name: str) -> Optional[uuid.UUID]:
    value = payload.get(name)
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise AuthenticationError("Invalid token")


def decode_access_token(token: str | None) -> Principal:
    token = _normalize_token(token)
    if not token:
        raise AuthenticationError("Invalid token")

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        # Includes expired signature, bad format, bad signature, wrong algorithm, etc.
        raise AuthenticationError("Invalid token")

    user_id = _uuid_claim(payload, "sub")
    if user_id is None:
        raise AuthenticationError("Invalid token")

    return Principal(
        user_id=user_id,
        email=payload.get("email"),
        impersonator_id=_uuid_claim(payload, "imp"),
    )
