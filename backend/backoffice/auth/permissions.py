from __future__ import annotations

import enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping

from backoffice.core.errors import CatalogValidationError
from backoffice.core.roles import TenantRole, parse_tenant_role


class Capability(str, enum.Enum):
    # clients.* (mükellef / client companies)
    CLIENTS_READ = "clients:read"
    CLIENTS_CREATE = "clients:create"
    CLIENTS_UPDATE = "clients:update"
    CLIENTS_DELETE = "clients:delete"

    # invoices.* (transactions are gated on these as well)
    INVOICES_READ = "invoices:read"
    INVOICES_CREATE = "invoices:create"
    INVOICES_UPDATE = "invoices:update"
    INVOICES_DELETE = "invoices:delete"
    INVOICES_MANAGE = "invoices:manage"

    # documents.*
    DOCUMENTS_READ = "documents:read"
    DOCUMENTS_CREATE = "documents:create"
    DOCUMENTS_UPDATE = "documents:update"
    DOCUMENTS_MANAGE = "documents:manage"

    # reports.*: view = on-demand generation and download, create/manage = scheduled reports
    REPORTS_READ = "reports:read"
    REPORTS_VIEW = "reports:view"
    REPORTS_CREATE = "reports:create"
    REPORTS_MANAGE = "reports:manage"

    # regulatory: MASAK, beyanname
    MASAK_VIEW = "masak:view"
    MASAK_CREATE = "masak:create"
    MASAK_MANAGE = "masak:manage"
    BEYANNAME_VIEW = "beyanname:view"
    BEYANNAME_CREATE = "beyanname:create"
    BEYANNAME_MANAGE = "beyanname:manage"

    # finance tooling
    CASH_FLOW_VIEW = "cash_flow:view"
    CASH_FLOW_MANAGE = "cash_flow:manage"
    CHECK_NOTES_VIEW = "check_notes:view"
    CHECK_NOTES_MANAGE = "check_notes:manage"
    PAYMENT_REMINDERS_VIEW = "payment_reminders:view"
    PAYMENT_REMINDERS_MANAGE = "payment_reminders:manage"
    EXCHANGE_RATES_VIEW = "exchange_rates:view"
    EXCHANGE_RATES_MANAGE = "exchange_rates:manage"

    # tasks.*
    TASKS_READ = "tasks:read"
    TASKS_CREATE = "tasks:create"
    TASKS_UPDATE = "tasks:update"
    TASKS_DELETE = "tasks:delete"

    # integrations.*
    INTEGRATIONS_READ = "integrations:read"
    INTEGRATIONS_MANAGE = "integrations:manage"

    # users.* (tenant members); manage covers KVKK and security settings
    USERS_READ = "users:read"
    USERS_INVITE = "users:invite"
    USERS_UPDATE = "users:update"
    USERS_MANAGE = "users:manage"

    # settings.*
    SETTINGS_UPDATE = "settings:update"
    SETTINGS_BILLING = "settings:billing"

    # audit.*
    AUDIT_READ = "audit:read"


C = Capability

_OWNER_ONLY = frozenset({C.SETTINGS_UPDATE, C.SETTINGS_BILLING})

ROLE_BASE_PERMISSIONS: Mapping[TenantRole, FrozenSet[Capability]] = {
    TenantRole.TENANT_OWNER: frozenset(Capability),
    TenantRole.ACCOUNTANT: frozenset(Capability) - _OWNER_ONLY,
    TenantRole.STAFF: frozenset(
        {
            C.CLIENTS_READ,
            C.CLIENTS_CREATE,
            C.CLIENTS_UPDATE,
            C.INVOICES_READ,
            C.INVOICES_CREATE,
            C.INVOICES_UPDATE,
            C.DOCUMENTS_READ,
            C.DOCUMENTS_CREATE,
            C.DOCUMENTS_UPDATE,
            C.REPORTS_READ,
            C.REPORTS_VIEW,
            C.MASAK_VIEW,
            C.BEYANNAME_VIEW,
            C.CASH_FLOW_VIEW,
            C.CHECK_NOTES_VIEW,
            C.PAYMENT_REMINDERS_VIEW,
            C.EXCHANGE_RATES_VIEW,
            C.TASKS_READ,
            C.TASKS_CREATE,
            C.TASKS_UPDATE,
            C.INTEGRATIONS_READ,
            C.USERS_READ,
        }
    ),
    TenantRole.READ_ONLY: frozenset(
        {
            C.CLIENTS_READ,
            C.INVOICES_READ,
            C.DOCUMENTS_READ,
            C.REPORTS_READ,
            C.REPORTS_VIEW,
            C.TASKS_READ,
            C.USERS_READ,
        }
    ),
}


def parse_capability(value) -> Capability | None:
    if isinstance(value, Capability):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Capability(value.strip())
    except ValueError:
        return None


class PermissionCatalog:
    """
    Read-only role -> capability table.

    Built once at startup and shared by reference; there is no way to mutate
    it afterwards. Construction validates the table so a typo fails the
    process at boot instead of silently denying (or granting) at runtime.
    """

    __slots__ = ("_grants",)

    def __init__(self, grants: Mapping[TenantRole, Iterable[Capability]]) -> None:
        table: dict[TenantRole, FrozenSet[Capability]] = {}
        for role, caps in grants.items():
            if not isinstance(role, TenantRole):
                raise CatalogValidationError(f"Unknown role in catalog: {role!r}")
            caps = list(caps)
            unknown = [c for c in caps if not isinstance(c, Capability)]
            if unknown:
                raise CatalogValidationError(
                    f"Role {role.value} references unknown capabilities: {unknown!r}"
                )
            if not caps:
                raise CatalogValidationError(f"Role {role.value} has an empty capability set")
            table[role] = frozenset(caps)

        missing = [r.value for r in TenantRole if r not in table]
        if missing:
            raise CatalogValidationError(f"Catalog is missing roles: {missing}")

        object.__setattr__(self, "_grants", MappingProxyType(table))

    def __setattr__(self, name, value):
        raise AttributeError("PermissionCatalog is immutable")

    def grants(self, role) -> FrozenSet[Capability]:
        """Capabilities granted to `role`. Unknown roles get an empty set."""
        parsed = parse_tenant_role(role)
        if parsed is None:
            return frozenset()
        return self._grants.get(parsed, frozenset())

    def roles(self) -> tuple[TenantRole, ...]:
        return tuple(self._grants.keys())

    def as_dict(self) -> dict[str, list[str]]:
        return {r.value: sorted(c.value for c in caps) for r, caps in self._grants.items()}


DEFAULT_CATALOG = PermissionCatalog(ROLE_BASE_PERMISSIONS)


def _as_list(capabilities) -> list:
    if capabilities is None:
        return []
    if isinstance(capabilities, str):
        return [capabilities]
    try:
        return list(capabilities)
    except TypeError:
        return []


def has_permission(role, capability, *, catalog: PermissionCatalog = DEFAULT_CATALOG) -> bool:
    cap = parse_capability(capability)
    if cap is None:
        return False
    return cap in catalog.grants(role)


def has_any_permission(role, capabilities, *, catalog: PermissionCatalog = DEFAULT_CATALOG) -> bool:
    """
    True if at least one of `capabilities` is granted.
    An empty requirement denies.
    """
    required = _as_list(capabilities)
    if not required:
        return False
    return any(has_permission(role, c, catalog=catalog) for c in required)


def has_all_permissions(role, capabilities, *, catalog: PermissionCatalog = DEFAULT_CATALOG) -> bool:
    """
    True only if every one of `capabilities` is granted.
    An empty requirement denies; it never passes vacuously.
    """
    required = _as_list(capabilities)
    if not required:
        return False
    return all(has_permission(role, c, catalog=catalog) for c in required)


def missing_permissions(role, capabilities, *, catalog: PermissionCatalog = DEFAULT_CATALOG) -> list[str]:
    out = []
    for c in _as_list(capabilities):
        if not has_permission(role, c, catalog=catalog):
            out.append(c.value if isinstance(c, Capability) else str(c))
    return out
