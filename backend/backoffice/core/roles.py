# backoffice/core/roles.py

import enum


class TenantRole(str, enum.Enum):
    TENANT_OWNER = "TenantOwner"  # office owner (SMMM) / ultimate authority
    ACCOUNTANT = "Accountant"     # runs the books, manages staff
    STAFF = "Staff"               # day-to-day data entry
    READ_ONLY = "ReadOnly"        # client-side viewers


class MembershipStatus(str, enum.Enum):
    ACTIVE = "active"
    INVITED = "invited"
    SUSPENDED = "suspended"


class PlatformRole(str, enum.Enum):
    PLATFORM_ADMIN = "PlatformAdmin"
    SUPPORT = "Support"


# Only used when one member administers another; permission checks never look at it.
ROLE_RANK: dict[TenantRole, int] = {
    TenantRole.TENANT_OWNER: 4,
    TenantRole.ACCOUNTANT: 3,
    TenantRole.STAFF: 2,
    TenantRole.READ_ONLY: 1,
}


def parse_tenant_role(value) -> TenantRole | None:
    """
    Coerce an enum member or raw string into a TenantRole.
    Unknown / malformed values give None instead of raising.
    """
    if isinstance(value, TenantRole):
        return value
    if not isinstance(value, str):
        return None
    try:
        return TenantRole(value.strip())
    except ValueError:
        return None


def parse_membership_status(value) -> MembershipStatus | None:
    if isinstance(value, MembershipStatus):
        return value
    if not isinstance(value, str):
        return None
    try:
        return MembershipStatus(value.strip().lower())
    except ValueError:
        return None
