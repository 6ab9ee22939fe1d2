from __future__ import annotations

import logging
import uuid
from typing import Mapping, Optional, Protocol

from backoffice.auth.context import Impersonation, MembershipRecord, Principal, RequestContext
from backoffice.core.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)


class LookupFailedError(Exception):
    """A membership or platform collaborator raised; the original is chained as __cause__."""


class MembershipLookup(Protocol):
    async def lookup_membership(
        self, user_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> Optional[MembershipRecord]: ...


class PlatformLookup(Protocol):
    async def is_platform_operator(self, user_id: uuid.UUID) -> bool: ...


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def _tenant_from_host(host: Optional[str], base_domain: Optional[str]) -> Optional[uuid.UUID]:
    if not host or not base_domain:
        return None
    hostname = host.split(":", 1)[0].strip().lower()
    suffix = "." + base_domain.strip().lower().lstrip(".")
    if not hostname.endswith(suffix):
        return None
    label = hostname[: -len(suffix)]
    if not label or "." in label:
        return None
    return _parse_uuid(label)


def extract_tenant_id(
    *,
    headers: Mapping[str, str],
    path_params: Mapping[str, str],
    host: Optional[str] = None,
    header_name: str = "X-Tenant-Id",
    base_domain: Optional[str] = None,
) -> Optional[uuid.UUID]:
    """
    Tenant id from (in order) the tenant header, a `tenant_id` path segment,
    or the subdomain under `base_domain`.

    Malformed values count as "no tenant". Any two sources naming different
    tenants are rejected outright.
    """
    from_header = _parse_uuid(headers.get(header_name) or headers.get(header_name.lower()))
    from_path = _parse_uuid(path_params.get("tenant_id"))
    from_host = _tenant_from_host(host, base_domain)

    named = {t for t in (from_header, from_path, from_host) if t is not None}
    if len(named) > 1:
        raise AuthorizationError(
            "The request names more than one tenant.",
            code="tenant_mismatch",
        )

    return from_header or from_path or from_host


class RequestContextResolver:
    """
    Turns "authenticated principal + tenant mentioned by the request" into a
    RequestContext.

    The resolver never rejects a request for lacking a membership: some routes
    are valid without one, and that decision belongs to the gate.
    """

    def __init__(self, membership_lookup: MembershipLookup, platform_lookup: PlatformLookup) -> None:
        self._memberships = membership_lookup
        self._platform = platform_lookup

    async def _resolve_impersonation(self, principal: Principal) -> Optional[Impersonation]:
        if principal.impersonator_id is None:
            return None

        if principal.impersonator_id == principal.user_id:
            raise AuthenticationError("Invalid impersonation credential.")

        try:
            is_operator = await self._platform.is_platform_operator(principal.impersonator_id)
        except Exception as exc:
            raise LookupFailedError("platform lookup failed") from exc

        if not is_operator:
            logger.warning(
                "Rejected impersonation by non-operator",
                extra={
                    "impersonator_id": str(principal.impersonator_id),
                    "target_user_id": str(principal.user_id),
                },
            )
            raise AuthenticationError("Invalid impersonation credential.")

        return Impersonation(
            impersonator_id=principal.impersonator_id,
            impersonated_user_id=principal.user_id,
        )

    async def resolve(
        self,
        principal: Optional[Principal],
        tenant_id: Optional[uuid.UUID],
        *,
        request_id: Optional[str] = None,
    ) -> RequestContext:
        if principal is None:
            raise AuthenticationError()

        impersonation = await self._resolve_impersonation(principal)

        membership: Optional[MembershipRecord] = None
        if tenant_id is not None:
            # Always the effective (impersonated) user, never the operator.
            try:
                record = await self._memberships.lookup_membership(principal.user_id, tenant_id)
            except Exception as exc:
                raise LookupFailedError("membership lookup failed") from exc
            if record is not None:
                if record.tenant_id != tenant_id or record.user_id != principal.user_id:
                    logger.error(
                        "Membership lookup returned a foreign record; discarding",
                        extra={
                            "requested_tenant_id": str(tenant_id),
                            "returned_tenant_id": str(record.tenant_id),
                            "user_id": str(principal.user_id),
                        },
                    )
                elif record.is_active:
                    membership = record

        kwargs = {"request_id": request_id} if request_id else {}
        return RequestContext(
            principal=principal,
            tenant_id=tenant_id,
            membership=membership,
            impersonation=impersonation,
            **kwargs,
        )
