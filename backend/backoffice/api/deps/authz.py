from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.context import Principal, RequestContext
from backoffice.auth.gate import build_gate
from backoffice.auth.permissions import DEFAULT_CATALOG, Capability, PermissionCatalog
from backoffice.auth.resolver import (
    MembershipLookup,
    PlatformLookup,
    RequestContextResolver,
    extract_tenant_id,
)
from backoffice.auth.usage import QuotaLookup, UsageGate
from backoffice.core.config import settings
from backoffice.core.errors import AuthenticationError, AuthorizationError
from backoffice.core.plan_limits import UsageMetric
from backoffice.core.roles import TenantRole
from backoffice.core.security import bearer_scheme, decode_access_token
from backoffice.crud.tenant_membership import SqlMembershipLookup, SqlPlatformLookup
from backoffice.db.session import get_db
from backoffice.services.quota import SqlQuotaLookup

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Collaborators (overridden in tests)
# ---------------------------------------------------------
def get_permission_catalog() -> PermissionCatalog:
    return DEFAULT_CATALOG


def get_membership_lookup(db: AsyncSession = Depends(get_db)) -> MembershipLookup:
    return SqlMembershipLookup(db)


def get_platform_lookup(db: AsyncSession = Depends(get_db)) -> PlatformLookup:
    return SqlPlatformLookup(db)


def get_quota_lookup(db: AsyncSession = Depends(get_db)) -> QuotaLookup:
    return SqlQuotaLookup(db)


# ---------------------------------------------------------
# Principal + context
# ---------------------------------------------------------
async def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Principal]:
    """
    None when no bearer token was sent at all; the gate turns that into 401.
    A token that is present but invalid raises right away.
    """
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


async def get_request_context(
    request: Request,
    principal: Optional[Principal] = Depends(get_principal),
    memberships: MembershipLookup = Depends(get_membership_lookup),
    platform: PlatformLookup = Depends(get_platform_lookup),
) -> RequestContext:
    """
    Resolve the per-request context once (FastAPI caches it per request).
    Lookup failures of any kind, typed or not, fail closed as an
    authorization error; only the resolver's own 401/403 decisions pass through.
    """
    request_id = request.headers.get("X-Request-Id")

    # Unauthenticated: hand the gate an empty context so its first check rejects.
    if principal is None:
        return RequestContext(**({"request_id": request_id} if request_id else {}))

    tenant_id = extract_tenant_id(
        headers=request.headers,
        path_params=request.path_params,
        host=request.headers.get("host"),
        header_name=settings.TENANT_HEADER,
        base_domain=settings.TENANT_BASE_DOMAIN,
    )

    resolver = RequestContextResolver(memberships, platform)
    try:
        return await resolver.resolve(principal, tenant_id, request_id=request_id)
    except (AuthenticationError, AuthorizationError):
        raise
    except Exception:
        logger.exception(
            "Context resolution failed; denying",
            extra={"user_id": str(principal.user_id), "tenant_id": str(tenant_id) if tenant_id else None},
        )
        raise AuthorizationError(code="authorization_failed")


# ---------------------------------------------------------
# Gate dependency factories
# ---------------------------------------------------------
def _gate_dependency(
    *,
    tenant_optional: bool = False,
    roles: Optional[Sequence[TenantRole | str]] = None,
    permissions: Optional[Sequence[Capability | str]] = None,
    any_of: bool = False,
) -> Callable:
    # Validate at route-declaration time so a typo fails the import, not a request.
    build_gate(tenant_optional=tenant_optional, roles=roles, permissions=permissions, any_of=any_of)

    async def _checker(
        ctx: RequestContext = Depends(get_request_context),
        catalog: PermissionCatalog = Depends(get_permission_catalog),
    ) -> RequestContext:
        gate = build_gate(
            tenant_optional=tenant_optional,
            roles=roles,
            permissions=permissions,
            any_of=any_of,
            catalog=catalog,
        )
        return gate.enforce(ctx)

    return _checker


def require_tenant(*, optional: bool = False) -> Callable:
    """Authenticated, and (unless optional) an active membership in the requested tenant."""
    return _gate_dependency(tenant_optional=optional)


def require_tenant_roles(*allowed_roles: TenantRole | str) -> Callable:
    """
    Enforce membership.role in allowed_roles.
    """
    return _gate_dependency(roles=list(allowed_roles))


def require_permissions(
    required: Capability | str | Sequence[Capability | str],
    *,
    any_of: bool = False,
) -> Callable:
    """
    Enforce RBAC capabilities for the active tenant membership.

    Args:
      required: capability OR list of capabilities
      any_of: True => any required capability passes; False => all are required
    """
    required_list = [required] if isinstance(required, str) else list(required)
    return _gate_dependency(permissions=required_list, any_of=any_of)


def require_any_permission(*required: Capability | str) -> Callable:
    return require_permissions(list(required), any_of=True)


def require_usage(metric: UsageMetric | str) -> Callable:
    """
    Plan-limit check for a metered action. Runs after the tenant gate and
    fails open if the quota collaborator is unavailable.
    """
    metric = UsageMetric(metric)

    async def _checker(
        ctx: RequestContext = Depends(require_tenant()),
        quota: QuotaLookup = Depends(get_quota_lookup),
    ) -> RequestContext:
        gate = UsageGate(quota, timeout_seconds=settings.QUOTA_LOOKUP_TIMEOUT_SECONDS)
        await gate.enforce(ctx.tenant_id, metric)
        return ctx

    return _checker
