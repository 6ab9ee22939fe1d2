"""
Authorization gate.

A route's requirements are an explicit, ordered list of checks evaluated
left to right; the first failing check rejects the request and nothing after
it runs. `build_gate()` always emits the checks in the fixed order
auth -> tenant -> role -> permission.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from backoffice.auth.context import RequestContext
from backoffice.auth.permissions import (
    DEFAULT_CATALOG,
    Capability,
    PermissionCatalog,
    has_all_permissions,
    has_any_permission,
    missing_permissions,
    parse_capability,
)
from backoffice.core.errors import AuthenticationError, AuthorizationError, BackofficeError
from backoffice.core.roles import TenantRole, parse_tenant_role

logger = logging.getLogger(__name__)


class GateState(str, enum.Enum):
    UNCHECKED = "unchecked"
    AUTH_CHECKED = "auth_checked"
    TENANT_CHECKED = "tenant_checked"
    ROLE_CHECKED = "role_checked"
    PERMISSION_CHECKED = "permission_checked"
    PASSED = "passed"
    REJECTED = "rejected"


class PermissionMode(str, enum.Enum):
    ALL = "all"
    ANY = "any"


class Check:
    # state the pipeline moves to once this check passes
    passes_to: GateState = GateState.UNCHECKED

    def evaluate(self, ctx: RequestContext, catalog: PermissionCatalog) -> Optional[BackofficeError]:
        """Return None when satisfied, otherwise the error to reject with."""
        raise NotImplementedError


@dataclass(frozen=True)
class RequireAuth(Check):
    passes_to = GateState.AUTH_CHECKED

    def evaluate(self, ctx, catalog):
        if ctx.principal is None:
            return AuthenticationError()
        return None


@dataclass(frozen=True)
class RequireTenant(Check):
    optional: bool = False
    passes_to = GateState.TENANT_CHECKED

    def evaluate(self, ctx, catalog):
        if self.optional:
            return None
        if ctx.tenant_id is None or ctx.membership is None:
            return AuthorizationError(
                "Tenant membership required.",
                code="tenant_membership_required",
            )
        return None


@dataclass(frozen=True)
class RequireRole(Check):
    roles: frozenset = field(default_factory=frozenset)
    passes_to = GateState.ROLE_CHECKED

    def __post_init__(self) -> None:
        parsed = set()
        for r in self.roles:
            role = parse_tenant_role(r)
            if role is None:
                raise ValueError(f"Unknown tenant role: {r!r}")
            parsed.add(role)
        if not parsed:
            raise ValueError("RequireRole needs at least one role")
        object.__setattr__(self, "roles", frozenset(parsed))

    def evaluate(self, ctx, catalog):
        role = ctx.role
        if role is None or role not in self.roles:
            allowed = sorted(r.value for r in self.roles)
            return AuthorizationError(
                f"Insufficient role. Allowed: {', '.join(allowed)}",
                code="role_not_allowed",
                details={"allowed_roles": allowed},
            )
        return None


@dataclass(frozen=True)
class RequirePermission(Check):
    capabilities: tuple = ()
    mode: PermissionMode = PermissionMode.ALL
    passes_to = GateState.PERMISSION_CHECKED

    def __post_init__(self) -> None:
        parsed = []
        for c in self.capabilities:
            cap = parse_capability(c)
            if cap is None:
                raise ValueError(f"Unknown capability: {c!r}")
            parsed.append(cap)
        if not parsed:
            raise ValueError("RequirePermission needs at least one capability")
        object.__setattr__(self, "capabilities", tuple(parsed))
        object.__setattr__(self, "mode", PermissionMode(self.mode))

    def evaluate(self, ctx, catalog):
        role = ctx.role
        if self.mode == PermissionMode.ANY:
            ok = has_any_permission(role, self.capabilities, catalog=catalog)
        else:
            ok = has_all_permissions(role, self.capabilities, catalog=catalog)
        if ok:
            return None

        required = [c.value for c in self.capabilities]
        return AuthorizationError(
            code="permission_denied",
            details={
                "required": required,
                "missing": missing_permissions(role, self.capabilities, catalog=catalog),
                "mode": self.mode.value,
            },
        )


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    error: Optional[BackofficeError] = None

    @property
    def allowed(self) -> bool:
        return self.state == GateState.PASSED


class AuthorizationGate:
    def __init__(self, checks: Sequence[Check], catalog: PermissionCatalog = DEFAULT_CATALOG) -> None:
        self.checks: tuple[Check, ...] = tuple(checks)
        self.catalog = catalog

    def evaluate(self, ctx: RequestContext) -> GateDecision:
        """
        Run every check in order and stop at the first failure.
        Side-effect free apart from logging: the same context always gets the
        same decision.
        """
        state = GateState.UNCHECKED
        for check in self.checks:
            try:
                error = check.evaluate(ctx, self.catalog)
            except Exception:
                # Fail closed: a broken check is a denial, never a 500 or an allow.
                logger.exception(
                    "Authorization check %s raised; denying",
                    type(check).__name__,
                    extra=ctx.log_fields(),
                )
                error = AuthorizationError(code="authorization_failed")

            if error is not None:
                logger.info(
                    "Authorization denied: %s",
                    error.code,
                    extra={**ctx.log_fields(), "check": type(check).__name__},
                )
                return GateDecision(state=GateState.REJECTED, error=error)
            state = check.passes_to

        return GateDecision(state=GateState.PASSED)

    def enforce(self, ctx: RequestContext) -> RequestContext:
        decision = self.evaluate(ctx)
        if decision.error is not None:
            raise decision.error
        return ctx


def build_gate(
    *,
    tenant_optional: bool = False,
    roles: Iterable[TenantRole | str] | None = None,
    permissions: Iterable[Capability | str] | None = None,
    any_of: bool = False,
    catalog: PermissionCatalog = DEFAULT_CATALOG,
) -> AuthorizationGate:
    checks: list[Check] = [RequireAuth(), RequireTenant(optional=tenant_optional)]
    if roles is not None:
        checks.append(RequireRole(frozenset(roles)))
    if permissions is not None:
        mode = PermissionMode.ANY if any_of else PermissionMode.ALL
        checks.append(RequirePermission(tuple(permissions), mode))
    return AuthorizationGate(checks, catalog)
