"""
Per-request authorization context.

Built once by the resolver at the start of a request, passed down through
FastAPI dependencies, and dropped when the request ends. Nothing mutates it
after construction.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from backoffice.core.errors import TenantIsolationError
from backoffice.core.roles import MembershipStatus, TenantRole


@dataclass(frozen=True)
class Principal:
    """Identity handed over by upstream authentication."""

    user_id: uuid.UUID
    email: Optional[str] = None
    # Set when a platform operator is acting as `user_id`.
    impersonator_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class Impersonation:
    impersonator_id: uuid.UUID
    impersonated_user_id: uuid.UUID


@dataclass(frozen=True)
class MembershipRecord:
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    role: TenantRole
    status: MembershipStatus

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE


@dataclass(frozen=True)
class RequestContext:
    principal: Optional[Principal] = None
    tenant_id: Optional[uuid.UUID] = None
    membership: Optional[MembershipRecord] = None
    impersonation: Optional[Impersonation] = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        # A membership may only ever describe the tenant being accessed.
        if self.membership is not None:
            if self.tenant_id is None or self.membership.tenant_id != self.tenant_id:
                raise TenantIsolationError()
            if self.principal is None or self.membership.user_id != self.principal.user_id:
                raise TenantIsolationError("Membership does not belong to the current principal.")

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def is_impersonating(self) -> bool:
        return self.impersonation is not None

    @property
    def user_id(self) -> Optional[uuid.UUID]:
        return self.principal.user_id if self.principal else None

    @property
    def role(self) -> Optional[TenantRole]:
        return self.membership.role if self.membership else None

    def log_fields(self) -> dict[str, str | None]:
        return {
            "request_id": self.request_id,
            "user_id": str(self.user_id) if self.user_id else None,
            "tenant_id": str(self.tenant_id) if self.tenant_id else None,
            "impersonator_id": (
                str(self.impersonation.impersonator_id) if self.impersonation else None
            ),
        }
