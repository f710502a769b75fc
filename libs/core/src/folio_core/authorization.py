"""
Multi-tenant authorization.

Every check runs against an explicit :class:`AuthorizationContext` built
for one user and one active organization. Org-scoped roles are recorded
per (user, organization) pair, so the grants inside a context are only
valid for the organization they were loaded for; switching organization
means loading a new context through :class:`AccessLoader`.

Super-admin is a global role. It is looked up without any tenant and
bypasses every per-organization check.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from folio_core.errors import AuthorizationError
from folio_core.models.tenant import Role


@dataclass(frozen=True)
class TenantContext:
    """The user acting and the organization they are acting in."""

    user_id: UUID
    organization_id: UUID | None


@dataclass(frozen=True)
class AccessGrants:
    """Role and client grants of one user, valid for one organization."""

    organization_id: UUID | None
    global_roles: frozenset[str] = frozenset()
    organization_roles: frozenset[str] = frozenset()
    client_ids: frozenset[UUID] = frozenset()

    @property
    def is_member(self) -> bool:
        return bool(self.organization_roles)


@dataclass(frozen=True)
class ResourceScope:
    """Ownership of a protected entity."""

    organization_id: UUID
    client_id: UUID | None = None


@dataclass(frozen=True)
class AuthorizationContext:
    """Immutable per-request authorization state."""

    tenant: TenantContext
    grants: AccessGrants = field(default_factory=lambda: AccessGrants(organization_id=None))

    def __post_init__(self) -> None:
        if self.grants.organization_id != self.tenant.organization_id:
            raise ValueError(
                "Access grants were loaded for a different organization than the tenant context"
            )

    @property
    def user_id(self) -> UUID:
        return self.tenant.user_id

    @property
    def organization_id(self) -> UUID | None:
        return self.tenant.organization_id

    @property
    def is_super_admin(self) -> bool:
        return Role.SUPER_ADMIN in self.grants.global_roles

    def in_active_organization(self, organization_id: UUID) -> bool:
        return self.organization_id is not None and self.organization_id == organization_id

    def is_org_admin(self, organization_id: UUID) -> bool:
        """True only when the user is org-admin of ``organization_id`` itself."""
        return (
            self.in_active_organization(organization_id)
            and Role.ORG_ADMIN in self.grants.organization_roles
        )

    def is_member_of(self, organization_id: UUID) -> bool:
        return self.in_active_organization(organization_id) and self.grants.is_member

    def has_client_access(self, scope: ResourceScope) -> bool:
        return (
            scope.client_id is not None
            and self.in_active_organization(scope.organization_id)
            and scope.client_id in self.grants.client_ids
        )


class AccessLoader(Protocol):
    """Loads grants for a tenant context."""

    async def load(self, tenant: TenantContext) -> AccessGrants: ...


async def load_context(loader: AccessLoader, tenant: TenantContext) -> AuthorizationContext:
    """Build an authorization context for ``tenant``."""
    return AuthorizationContext(tenant=tenant, grants=await loader.load(tenant))


async def switch_organization(
    loader: AccessLoader, context: AuthorizationContext, organization_id: UUID
) -> AuthorizationContext:
    """Return a fresh context for the same user acting in another organization."""
    tenant = TenantContext(user_id=context.user_id, organization_id=organization_id)
    return await load_context(loader, tenant)


def resolve_active_organization(
    *,
    explicit: UUID | None,
    session: UUID | None,
    memberships: Iterable[UUID],
    is_super_admin: bool = False,
) -> UUID | None:
    """
    Pick the active organization for a request.

    Order: explicit request parameter, then the session/cookie value, then
    the user's first organization. Candidates the user is not a member of
    are skipped unless the user is a super-admin.
    """
    member_of = list(memberships)
    for candidate in (explicit, session):
        if candidate is None:
            continue
        if is_super_admin or candidate in member_of:
            return candidate
    return member_of[0] if member_of else None


def authorize(allowed: bool, what: str = "Resource") -> None:
    """
    Raise unless ``allowed``.

    Raises:
        AuthorizationError: reported as not-found by callers
    """
    if not allowed:
        raise AuthorizationError(f"{what} not found")


# ============================================================
# Policies
# ============================================================


class ClientScopedPolicy:
    """Documents, task slots included: admins, or users granted the owning client."""

    @staticmethod
    def _allowed(ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        if ctx.is_super_admin:
            return True
        if ctx.is_org_admin(scope.organization_id):
            return True
        return ctx.has_client_access(scope)

    def can_view(self, ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return self._allowed(ctx, scope)

    def can_create(self, ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return self._allowed(ctx, scope)

    def can_update(self, ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return self._allowed(ctx, scope)

    def can_delete(self, ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return self._allowed(ctx, scope)


class DocumentPolicy(ClientScopedPolicy):
    pass


class AdminManagedPolicy(ClientScopedPolicy):
    """Viewable like documents; only admins may create, update or delete."""

    @staticmethod
    def _admin(ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return ctx.is_super_admin or ctx.is_org_admin(scope.organization_id)

    def can_create(self, ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return self._admin(ctx, scope)

    def can_update(self, ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return self._admin(ctx, scope)

    def can_delete(self, ctx: AuthorizationContext, scope: ResourceScope) -> bool:
        return self._admin(ctx, scope)


class ProjectPolicy(AdminManagedPolicy):
    pass


class ClientPolicy(AdminManagedPolicy):
    pass


class ProjectTypePolicy:
    """Project types are organization-wide configuration."""

    def can_view(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return ctx.is_super_admin or ctx.is_member_of(organization_id)

    def can_update(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return ctx.is_super_admin or ctx.is_org_admin(organization_id)

    def can_delete(
        self, ctx: AuthorizationContext, organization_id: UUID, *, project_count: int
    ) -> bool:
        return self.can_update(ctx, organization_id) and project_count == 0


class AiTemplatePolicy:
    """AI templates cannot be deleted while a workflow edge references them."""

    def can_view(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return ctx.is_super_admin or ctx.is_member_of(organization_id)

    def can_update(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return ctx.is_super_admin or ctx.is_org_admin(organization_id)

    def can_delete(
        self, ctx: AuthorizationContext, organization_id: UUID, *, in_use: bool
    ) -> bool:
        return self.can_update(ctx, organization_id) and not in_use


class OrganizationPolicy:
    def can_view(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return ctx.is_super_admin or ctx.is_member_of(organization_id)

    def can_update(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return ctx.is_super_admin or ctx.is_org_admin(organization_id)

    def can_manage_users(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return self.can_update(ctx, organization_id)

    def can_delete(self, ctx: AuthorizationContext, organization_id: UUID) -> bool:
        return ctx.is_super_admin
