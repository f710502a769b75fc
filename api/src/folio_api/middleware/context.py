"""Authorization context for multi-tenancy support.

This module provides the FastAPI dependency that builds the
:class:`AuthorizationContext` for an incoming request.

- The acting user comes from the X-User-ID header (required).
- The active organization is taken from the X-Organization-ID header, then
  from the ``last_org_id`` cookie, then from the user's first membership.
  An organization the user does not belong to is ignored unless the user
  is a super-admin.
- Grants are loaded once for the resolved (user, organization) pair and
  the chosen organization is written back to the cookie.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from folio_api.config import Settings, get_settings
from folio_api.dependencies import get_db_session
from folio_core.authorization import (
    AuthorizationContext,
    TenantContext,
    load_context,
    resolve_active_organization,
)
from folio_core.models import Role
from folio_db.repositories import AccessRepository


def parse_uuid(value: str | None) -> UUID | None:
    """Parse a header or cookie value, treating malformed ids as absent."""
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


async def resolve_authorization_context(
    access: AccessRepository,
    *,
    user_id: UUID,
    explicit_organization: UUID | None = None,
    session_organization: UUID | None = None,
) -> AuthorizationContext:
    """Resolve the active organization for ``user_id`` and load its grants."""
    global_roles = await access.global_roles(user_id)
    memberships = await access.membership_ids(user_id)
    organization_id = resolve_active_organization(
        explicit=explicit_organization,
        session=session_organization,
        memberships=memberships,
        is_super_admin=Role.SUPER_ADMIN in global_roles,
    )
    return await load_context(
        access, TenantContext(user_id=user_id, organization_id=organization_id)
    )


async def get_authorization_context(
    request: Request,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    x_user_id: Annotated[str | None, Header()] = None,
    x_organization_id: Annotated[str | None, Header()] = None,
) -> AuthorizationContext:
    """
    FastAPI dependency that builds the authorization context of the request.

    Usage:
        @router.get("/projects/{project_id}")
        async def get_project(project_id: UUID, auth: Auth):
            authorize(ProjectPolicy().can_view(auth, scope), "Project")
    """
    user_id = parse_uuid(x_user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header is required",
        )

    ctx = await resolve_authorization_context(
        AccessRepository(db),
        user_id=user_id,
        explicit_organization=parse_uuid(x_organization_id),
        session_organization=parse_uuid(request.cookies.get(settings.org_cookie_name)),
    )

    if ctx.organization_id is not None:
        response.set_cookie(
            settings.org_cookie_name,
            str(ctx.organization_id),
            max_age=settings.org_cookie_max_age,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )
    return ctx


# Type alias for cleaner dependency injection
Auth = Annotated[AuthorizationContext, Depends(get_authorization_context)]
