# tests/test_permissions.py
from __future__ import annotations

import itertools

import pytest

from backoffice.auth.permissions import (
    DEFAULT_CATALOG,
    ROLE_BASE_PERMISSIONS,
    Capability,
    PermissionCatalog,
    has_all_permissions,
    has_any_permission,
    has_permission,
    missing_permissions,
    parse_capability,
)
from backoffice.core.errors import CatalogValidationError
from backoffice.core.roles import TenantRole

# Spelled out on purpose: a grant added to the catalog must also be added here.
EXPECTED_GRANTS: dict[TenantRole, set[str]] = {
    TenantRole.TENANT_OWNER: {
        "clients:read", "clients:create", "clients:update", "clients:delete",
        "invoices:read", "invoices:create", "invoices:update", "invoices:delete", "invoices:manage",
        "documents:read", "documents:create", "documents:update", "documents:manage",
        "reports:read", "reports:view", "reports:create", "reports:manage",
        "masak:view", "masak:create", "masak:manage",
        "beyanname:view", "beyanname:create", "beyanname:manage",
        "cash_flow:view", "cash_flow:manage",
        "check_notes:view", "check_notes:manage",
        "payment_reminders:view", "payment_reminders:manage",
        "exchange_rates:view", "exchange_rates:manage",
        "tasks:read", "tasks:create", "tasks:update", "tasks:delete",
        "integrations:read", "integrations:manage",
        "users:read", "users:invite", "users:update", "users:manage",
        "settings:update", "settings:billing",
        "audit:read",
    },
    TenantRole.ACCOUNTANT: {
        "clients:read", "clients:create", "clients:update", "clients:delete",
        "invoices:read", "invoices:create", "invoices:update", "invoices:delete", "invoices:manage",
        "documents:read", "documents:create", "documents:update", "documents:manage",
        "reports:read", "reports:view", "reports:create", "reports:manage",
        "masak:view", "masak:create", "masak:manage",
        "beyanname:view", "beyanname:create", "beyanname:manage",
        "cash_flow:view", "cash_flow:manage",
        "check_notes:view", "check_notes:manage",
        "payment_reminders:view", "payment_reminders:manage",
        "exchange_rates:view", "exchange_rates:manage",
        "tasks:read", "tasks:create", "tasks:update", "tasks:delete",
        "integrations:read", "integrations:manage",
        "users:read", "users:invite", "users:update", "users:manage",
        "audit:read",
    },
    TenantRole.STAFF: {
        "clients:read", "clients:create", "clients:update",
        "invoices:read", "invoices:create", "invoices:update",
        "documents:read", "documents:create", "documents:update",
        "reports:read", "reports:view",
        "masak:view",
        "beyanname:view",
        "cash_flow:view",
        "check_notes:view",
        "payment_reminders:view",
        "exchange_rates:view",
        "tasks:read", "tasks:create", "tasks:update",
        "integrations:read",
        "users:read",
    },
    TenantRole.READ_ONLY: {
        "clients:read",
        "invoices:read",
        "documents:read",
        "reports:read", "reports:view",
        "tasks:read",
        "users:read",
    },
}

ALL_PAIRS = list(itertools.product(list(TenantRole), list(Capability)))


@pytest.mark.parametrize("role", list(TenantRole))
def test_catalog_grants_exact_expected_set(role):
    assert {c.value for c in DEFAULT_CATALOG.grants(role)} == EXPECTED_GRANTS[role]


def test_every_role_is_in_the_catalog():
    assert set(DEFAULT_CATALOG.roles()) == set(TenantRole)


@pytest.mark.parametrize("role,capability", ALL_PAIRS)
def test_has_permission_matches_catalog_membership(role, capability):
    assert has_permission(role, capability) is (capability in DEFAULT_CATALOG.grants(role))
    # raw strings coming off the wire evaluate identically
    assert has_permission(role.value, capability.value) is (capability.value in EXPECTED_GRANTS[role])


@pytest.mark.parametrize("role", list(TenantRole))
def test_empty_requirement_denies(role):
    assert has_any_permission(role, []) is False
    assert has_all_permissions(role, []) is False
    assert has_any_permission(role, None) is False
    assert has_all_permissions(role, ()) is False


@pytest.mark.parametrize("role", [None, "", "Admin", "tenantowner", "OWNER", 42, ["TenantOwner"], {"role": 1}])
def test_unknown_role_never_granted_and_never_raises(role):
    for cap in Capability:
        assert has_permission(role, cap) is False
    assert has_any_permission(role, list(Capability)) is False
    assert has_all_permissions(role, [Capability.INVOICES_READ]) is False
    assert DEFAULT_CATALOG.grants(role) == frozenset()


@pytest.mark.parametrize("capability", [None, "", "invoices:*", "invoices.read", "INVOICES:READ", 7, object()])
def test_unknown_capability_is_denied(capability):
    assert has_permission(TenantRole.TENANT_OWNER, capability) is False


def test_any_and_all_modes():
    staff = TenantRole.STAFF
    assert has_any_permission(staff, [Capability.INVOICES_DELETE, Capability.INVOICES_READ]) is True
    assert has_all_permissions(staff, [Capability.INVOICES_DELETE, Capability.INVOICES_READ]) is False
    assert has_all_permissions(staff, ["invoices:read", "invoices:update"]) is True
    # one bogus entry poisons an "all" requirement
    assert has_all_permissions(staff, ["invoices:read", "invoices:nuke"]) is False


def test_single_string_is_treated_as_one_capability():
    assert has_any_permission(TenantRole.READ_ONLY, "invoices:read") is True
    assert has_all_permissions(TenantRole.READ_ONLY, "invoices:delete") is False


def test_missing_permissions_lists_only_the_gaps():
    missing = missing_permissions(
        TenantRole.STAFF,
        [Capability.INVOICES_READ, Capability.INVOICES_DELETE, "bogus:thing"],
    )
    assert missing == ["invoices:delete", "bogus:thing"]


@pytest.mark.parametrize(
    "higher,lower",
    [
        (TenantRole.TENANT_OWNER, TenantRole.ACCOUNTANT),
        (TenantRole.ACCOUNTANT, TenantRole.STAFF),
        (TenantRole.STAFF, TenantRole.READ_ONLY),
        (TenantRole.TENANT_OWNER, TenantRole.READ_ONLY),
    ],
)
def test_monotonic_grants_between_nested_roles(higher, lower):
    assert DEFAULT_CATALOG.grants(lower) <= DEFAULT_CATALOG.grants(higher)
    for cap in Capability:
        if has_permission(lower, cap):
            assert has_permission(higher, cap)


def test_owner_only_capabilities():
    assert has_permission(TenantRole.TENANT_OWNER, Capability.SETTINGS_BILLING)
    assert not has_permission(TenantRole.ACCOUNTANT, Capability.SETTINGS_BILLING)
    assert not has_permission(TenantRole.ACCOUNTANT, Capability.SETTINGS_UPDATE)


@pytest.mark.parametrize("role", list(TenantRole))
def test_every_role_can_generate_and_download_reports(role):
    assert has_permission(role, "reports:view")


@pytest.mark.parametrize(
    "role, allowed",
    [
        (TenantRole.TENANT_OWNER, True),
        (TenantRole.ACCOUNTANT, True),
        (TenantRole.STAFF, False),
        (TenantRole.READ_ONLY, False),
    ],
)
def test_scheduled_reports_and_invites_need_accountant_or_owner(role, allowed):
    assert has_permission(role, "reports:create") is allowed
    assert has_permission(role, "users:invite") is allowed
    assert has_permission(role, "users:update") is allowed


def test_read_only_cannot_create_documents():
    assert not has_permission(TenantRole.READ_ONLY, "documents:create")
    assert has_permission(TenantRole.STAFF, "documents:create")


@pytest.mark.parametrize(
    "capability",
    ["invoices:manage", "reports:view", "documents:manage", "users:manage", "masak:view",
     "beyanname:view", "cash_flow:manage", "check_notes:view", "payment_reminders:manage",
     "exchange_rates:view"],
)
def test_route_capability_strings_are_declarable(capability):
    assert parse_capability(capability) is Capability(capability)


# ---------------------------------------------------------
# Catalog construction / immutability
# ---------------------------------------------------------
def test_catalog_rejects_missing_role():
    grants = {r: caps for r, caps in ROLE_BASE_PERMISSIONS.items() if r != TenantRole.READ_ONLY}
    with pytest.raises(CatalogValidationError, match="missing roles"):
        PermissionCatalog(grants)


def test_catalog_rejects_empty_role():
    grants = dict(ROLE_BASE_PERMISSIONS)
    grants[TenantRole.READ_ONLY] = frozenset()
    with pytest.raises(CatalogValidationError, match="empty"):
        PermissionCatalog(grants)


def test_catalog_rejects_raw_string_capability():
    grants = dict(ROLE_BASE_PERMISSIONS)
    grants[TenantRole.STAFF] = {"invoices:read"}
    with pytest.raises(CatalogValidationError, match="unknown capabilities"):
        PermissionCatalog(grants)


def test_catalog_rejects_unknown_role_key():
    grants = dict(ROLE_BASE_PERMISSIONS)
    grants["Admin"] = {Capability.INVOICES_READ}
    with pytest.raises(CatalogValidationError, match="Unknown role"):
        PermissionCatalog(grants)


def test_catalog_deduplicates_entries():
    grants = dict(ROLE_BASE_PERMISSIONS)
    grants[TenantRole.READ_ONLY] = [Capability.INVOICES_READ, Capability.INVOICES_READ]
    catalog = PermissionCatalog(grants)
    assert catalog.grants(TenantRole.READ_ONLY) == frozenset({Capability.INVOICES_READ})


def test_catalog_is_immutable():
    with pytest.raises(AttributeError):
        DEFAULT_CATALOG._grants = {}
    with pytest.raises(TypeError):
        DEFAULT_CATALOG._grants[TenantRole.READ_ONLY] = frozenset(Capability)


def test_injected_catalog_is_used_instead_of_default():
    grants = {r: {Capability.INVOICES_READ} for r in TenantRole}
    fake = PermissionCatalog(grants)

    assert has_permission(TenantRole.TENANT_OWNER, Capability.INVOICES_DELETE, catalog=fake) is False
    assert has_permission(TenantRole.READ_ONLY, Capability.INVOICES_READ, catalog=fake) is True


def test_as_dict_is_sorted_and_serialisable():
    data = DEFAULT_CATALOG.as_dict()
    assert data["ReadOnly"] == sorted(EXPECTED_GRANTS[TenantRole.READ_ONLY])
