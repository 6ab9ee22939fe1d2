"""
Membership administration: invitations, role changes and status transitions.

Memberships are never deleted; removing someone means suspending them so the
audit trail keeps the (user, tenant, role) history.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.context import RequestContext
from backoffice.core.errors import (
    AuthorizationError,
    MembershipExistsError,
    MembershipNotFoundError,
    MembershipRuleError,
)
from backoffice.core.roles import ROLE_RANK, MembershipStatus, TenantRole
from backoffice.crud.tenant_membership import create_membership, get_membership, list_memberships
from backoffice.crud.user import create_user, get_user_by_email, normalize_email
from backoffice.models.tenant_membership import TenantMembership

logger = logging.getLogger(__name__)

ALLOWED_STATUS_TRANSITIONS: dict[MembershipStatus, frozenset[MembershipStatus]] = {
    MembershipStatus.INVITED: frozenset({MembershipStatus.ACTIVE}),
    MembershipStatus.ACTIVE: frozenset({MembershipStatus.SUSPENDED}),
    MembershipStatus.SUSPENDED: frozenset({MembershipStatus.ACTIVE}),
}


def check_role_change(
    *,
    changer_id: uuid.UUID,
    changer_role: TenantRole,
    target_id: uuid.UUID,
    current_role: TenantRole,
    new_role: TenantRole,
) -> None:
    """
    Raise MembershipRuleError unless `changer` may move `target` to `new_role`.

    TenantOwner may do anything except change their own role. Everyone else
    can neither grant a role ranked at or above their own nor touch a member
    ranked at or above them.
    """
    if changer_id == target_id:
        raise MembershipRuleError("You cannot change your own role.")

    if changer_role == TenantRole.TENANT_OWNER:
        return

    if new_role == TenantRole.TENANT_OWNER:
        raise MembershipRuleError("Only the office owner can assign the TenantOwner role.")

    changer_rank = ROLE_RANK[changer_role]
    if ROLE_RANK[new_role] >= changer_rank:
        raise MembershipRuleError("You cannot assign a role equal to or above your own.")
    if ROLE_RANK[current_role] >= changer_rank:
        raise MembershipRuleError("You cannot modify a member whose role is equal to or above your own.")


def check_status_change(
    *,
    changer_id: uuid.UUID,
    changer_role: TenantRole,
    target_id: uuid.UUID,
    target_role: TenantRole,
    current_status: MembershipStatus,
    new_status: MembershipStatus,
) -> None:
    if changer_id == target_id:
        raise MembershipRuleError("You cannot change your own membership status.")

    if new_status not in ALLOWED_STATUS_TRANSITIONS.get(current_status, frozenset()):
        raise MembershipRuleError(
            f"Cannot move membership from {current_status.value} to {new_status.value}.",
            details={"from": current_status.value, "to": new_status.value},
        )

    if changer_role != TenantRole.TENANT_OWNER and ROLE_RANK[target_role] >= ROLE_RANK[changer_role]:
        raise MembershipRuleError("You cannot modify a member whose role is equal to or above your own.")


def check_invite(*, inviter_role: TenantRole, role: TenantRole) -> None:
    if inviter_role == TenantRole.TENANT_OWNER:
        return
    if role == TenantRole.TENANT_OWNER:
        raise MembershipRuleError("Only the office owner can invite a TenantOwner.")
    if ROLE_RANK[role] >= ROLE_RANK[inviter_role]:
        raise MembershipRuleError("You cannot invite someone with a role equal to or above your own.")


class MembershipService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def invite(
        self,
        ctx: RequestContext,
        email: str,
        role: TenantRole,
        full_name: str | None = None,
    ) -> TenantMembership:
        """
        Add `email` to the caller's tenant as an invited member.

        Unknown addresses get a placeholder user. A user already in the tenant,
        whatever their status, is refused with MembershipExistsError; the unique
        (tenant, user) constraint backs this up when two invites race.
        """
        check_invite(inviter_role=ctx.role, role=role)
        email = normalize_email(email)

        user = await get_user_by_email(self.db, email)
        if user is None:
            user = await create_user(self.db, email, full_name)
        elif await get_membership(self.db, ctx.tenant_id, user.id) is not None:
            raise MembershipExistsError()

        row = await create_membership(
            self.db,
            tenant_id=ctx.tenant_id,
            user_id=user.id,
            role=role,
            status=MembershipStatus.INVITED,
        )
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise MembershipExistsError()
        await self.db.refresh(row)

        logger.info(
            "Member invited as %s",
            role.value,
            extra={**ctx.log_fields(), "target_user_id": str(user.id)},
        )
        return row

    async def accept_invitation(self, ctx: RequestContext, user_id: uuid.UUID) -> TenantMembership:
        if user_id != ctx.user_id:
            raise AuthorizationError("You can only accept your own invitation.", code="invitation_not_yours")

        row = await get_membership(self.db, ctx.tenant_id, user_id)
        if row is None or row.status != MembershipStatus.INVITED.value:
            raise MembershipNotFoundError("Invitation not found or already accepted.")

        row.status = MembershipStatus.ACTIVE.value
        await self.db.commit()
        await self.db.refresh(row)

        logger.info("Invitation accepted", extra=ctx.log_fields())
        return row

    async def update_member(
        self,
        ctx: RequestContext,
        target_user_id: uuid.UUID,
        *,
        role: TenantRole | None = None,
        status: MembershipStatus | None = None,
    ) -> TenantMembership:
        if role is not None:
            return await self.change_role(ctx, target_user_id, role)
        if status is not None:
            return await self.change_status(ctx, target_user_id, status)
        raise MembershipRuleError("Either role or status must be provided.")

    async def list_members(self, tenant_id: uuid.UUID) -> list[TenantMembership]:
        return await list_memberships(self.db, tenant_id)

    async def _target(self, tenant_id: uuid.UUID, user_id: uuid.UUID) -> TenantMembership:
        row = await get_membership(self.db, tenant_id, user_id)
        if row is None:
            raise MembershipNotFoundError()
        return row

    async def change_role(
        self, ctx: RequestContext, target_user_id: uuid.UUID, new_role: TenantRole
    ) -> TenantMembership:
        row = await self._target(ctx.tenant_id, target_user_id)
        old_role = TenantRole(row.role)

        check_role_change(
            changer_id=ctx.user_id,
            changer_role=ctx.role,
            target_id=target_user_id,
            current_role=old_role,
            new_role=new_role,
        )

        row.role = new_role.value
        await self.db.commit()
        await self.db.refresh(row)

        logger.info(
            "Membership role changed %s -> %s",
            old_role.value,
            new_role.value,
            extra={**ctx.log_fields(), "target_user_id": str(target_user_id)},
        )
        return row

    async def change_status(
        self, ctx: RequestContext, target_user_id: uuid.UUID, new_status: MembershipStatus
    ) -> TenantMembership:
        row = await self._target(ctx.tenant_id, target_user_id)
        old_status = MembershipStatus(row.status)

        check_status_change(
            changer_id=ctx.user_id,
            changer_role=ctx.role,
            target_id=target_user_id,
            target_role=TenantRole(row.role),
            current_status=old_status,
            new_status=new_status,
        )

        row.status = new_status.value
        await self.db.commit()
        await self.db.refresh(row)

        logger.info(
            "Membership status changed %s -> %s",
            old_status.value,
            new_status.value,
            extra={**ctx.log_fields(), "target_user_id": str(target_user_id)},
        )
        return row
