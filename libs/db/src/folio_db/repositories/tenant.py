"""Access repository: role and client grants for authorization."""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select

from folio_core.authorization import AccessGrants, TenantContext
from folio_db.models import (
    ClientModel,
    ClientUserModel,
    GlobalRoleModel,
    MembershipModel,
)
from folio_db.repositories.base import BaseRepository


class AccessRepository(BaseRepository[MembershipModel]):
    """
    Loads role and client grants.

    Global roles are read with no organization filter. Org-scoped roles
    and client grants are read for exactly one organization.
    """

    model_class = MembershipModel

    async def membership_ids(self, user_id: UUID) -> Sequence[UUID]:
        """Organizations the user belongs to, oldest membership first."""
        stmt = (
            select(MembershipModel.organization_id)
            .where(MembershipModel.user_id == user_id)
            .order_by(MembershipModel.created_at, MembershipModel.organization_id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def global_roles(self, user_id: UUID) -> frozenset[str]:
        stmt = select(GlobalRoleModel.role).where(GlobalRoleModel.user_id == user_id)
        result = await self.session.execute(stmt)
        return frozenset(result.scalars().all())

    async def organization_roles(self, user_id: UUID, organization_id: UUID) -> frozenset[str]:
        stmt = select(MembershipModel.role).where(
            MembershipModel.user_id == user_id,
            MembershipModel.organization_id == organization_id,
        )
        result = await self.session.execute(stmt)
        return frozenset(result.scalars().all())

    async def client_ids(self, user_id: UUID, organization_id: UUID) -> frozenset[UUID]:
        stmt = (
            select(ClientUserModel.client_id)
            .join(ClientModel, ClientModel.id == ClientUserModel.client_id)
            .where(
                ClientUserModel.user_id == user_id,
                ClientModel.organization_id == organization_id,
            )
        )
        result = await self.session.execute(stmt)
        return frozenset(result.scalars().all())

    async def load(self, tenant: TenantContext) -> AccessGrants:
        """Load the grants valid for ``tenant``."""
        global_roles = await self.global_roles(tenant.user_id)
        if tenant.organization_id is None:
            return AccessGrants(organization_id=None, global_roles=global_roles)
        return AccessGrants(
            organization_id=tenant.organization_id,
            global_roles=global_roles,
            organization_roles=await self.organization_roles(
                tenant.user_id, tenant.organization_id
            ),
            client_ids=await self.client_ids(tenant.user_id, tenant.organization_id),
        )
