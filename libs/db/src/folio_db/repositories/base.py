"""Shared plumbing for the Postgres repositories."""

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import ColumnElement, Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from folio_db.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Binds one ORM model to the caller's session.

    Repositories flush but never commit; the unit of work that opened the
    session decides when changes become visible.

    Usage:
        class ProjectRepository(BaseRepository[ProjectModel]):
            model_class = ProjectModel
    """

    model_class: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelT | None:
        return await self.session.get(self.model_class, id)

    async def create(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.session.delete(entity)
        await self.session.flush()


class OrganizationScopedRepository(BaseRepository[ModelT]):
    """
    Repository for rows owned by a single organization.

    Rows of other organizations are filtered out of every lookup, so a
    foreign id reads exactly like a missing one.
    """

    def __init__(self, session: AsyncSession, organization_id: UUID):
        super().__init__(session)
        self.organization_id = organization_id

    def scoped(self, *criteria: ColumnElement[bool]) -> Select[tuple[ModelT]]:
        return select(self.model_class).where(
            self.model_class.organization_id == self.organization_id,  # type: ignore[attr-defined]
            *criteria,
        )

    async def get_by_id(self, id: UUID) -> ModelT | None:
        result = await self.session.execute(
            self.scoped(self.model_class.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()
