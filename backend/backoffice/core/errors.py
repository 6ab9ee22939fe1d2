# backoffice/core/errors.py

from __future__ import annotations

from typing import Any, Mapping

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class BackofficeError(Exception):
    """
    Base for every error this service raises on purpose.
    Carries a stable machine-readable `code` the client can branch on.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details: dict[str, Any] = dict(details or {})
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        body.update(self.details)
        return {"error": body}


# Authentication & Authorization
class AuthenticationError(BackofficeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    message = "Authentication required."


class AuthorizationError(BackofficeError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "You do not have permission to perform this action."


class TenantIsolationError(AuthorizationError):
    code = "tenant_isolation_violation"
    message = "Membership does not belong to the requested tenant."


# Catalog
class CatalogValidationError(ValueError):
    """Raised at startup when a permission catalog is incomplete or malformed."""


# Usage / quota
class QuotaExceededError(BackofficeError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "quota_exceeded"
    message = "Plan limit reached for this metric. Upgrade your plan to continue."


# Membership administration
class MembershipRuleError(BackofficeError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "membership_rule"
    message = "Membership change not allowed."


class MembershipNotFoundError(BackofficeError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "membership_not_found"
    message = "Membership not found."


class MembershipExistsError(BackofficeError):
    status_code = status.HTTP_409_CONFLICT
    code = "membership_exists"
    message = "This user is already a member of the office."


async def backoffice_error_handler(request: Request, exc: BackofficeError) -> JSONResponse:
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BackofficeError, backoffice_error_handler)
