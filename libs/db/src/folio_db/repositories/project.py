"""Project, project type and AI template repositories."""

from uuid import UUID

import structlog
from sqlalchemy import func, select

from folio_core.authorization import ResourceScope
from folio_core.models import AiTemplate, Project, ProjectType
from folio_db.models import (
    AiTemplateModel,
    ClientModel,
    ProjectModel,
    ProjectTypeModel,
)
from folio_db.repositories.base import BaseRepository, OrganizationScopedRepository

logger = structlog.get_logger(__name__)


class ProjectRepository(BaseRepository[ProjectModel]):
    model_class = ProjectModel

    async def get_scope(self, project_id: UUID) -> ResourceScope | None:
        """Owning organization and client of a project, derived through its client."""
        stmt = (
            select(ClientModel.organization_id, ProjectModel.client_id)
            .join(ClientModel, ClientModel.id == ProjectModel.client_id)
            .where(ProjectModel.id == project_id)
        )
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return ResourceScope(organization_id=row[0], client_id=row[1])

    async def get_domain(self, project_id: UUID) -> Project | None:
        model = await self.get_by_id(project_id)
        return Project.model_validate(model) if model else None


class ProjectTypeRepository(OrganizationScopedRepository[ProjectTypeModel]):
    model_class = ProjectTypeModel

    async def get_domain(self, project_type_id: UUID) -> ProjectType | None:
        model = await self.get_by_id(project_type_id)
        if model is None:
            return None
        return ProjectType.model_validate(
            {
                "id": model.id,
                "organization_id": model.organization_id,
                "name": model.name,
                "icon": model.icon,
                "document_schema": model.document_schema,
                "workflow": model.workflow,
                "created_at": model.created_at,
                "updated_at": model.updated_at,
            }
        )

    async def save(self, project_type: ProjectType) -> ProjectTypeModel:
        """
        Insert or update a project type.

        Raises:
            WorkflowIntegrityError: if a workflow edge references an undeclared type
        """
        project_type.validate_workflow()
        schema = [slot.model_dump(mode="json") for slot in project_type.document_schema]
        workflow = [edge.model_dump(mode="json") for edge in project_type.workflow]

        model = await self.get_by_id(project_type.id)
        if model is None:
            model = ProjectTypeModel(
                id=project_type.id,
                organization_id=self.organization_id,
                name=project_type.name,
                icon=project_type.icon,
                document_schema=schema,
                workflow=workflow,
            )
            self.session.add(model)
        else:
            model.name = project_type.name
            model.icon = project_type.icon
            model.document_schema = schema
            model.workflow = workflow
        await self.session.flush()
        logger.info(
            "project_type_saved",
            project_type_id=str(model.id),
            edges=len(workflow),
        )
        return model

    async def project_count(self, project_type_id: UUID) -> int:
        stmt = select(func.count(ProjectModel.id)).where(
            ProjectModel.project_type_id == project_type_id
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0


class AiTemplateRepository(OrganizationScopedRepository[AiTemplateModel]):
    model_class = AiTemplateModel

    async def get_domain(self, template_id: UUID) -> AiTemplate | None:
        model = await self.get_by_id(template_id)
        return AiTemplate.model_validate(model) if model else None

    async def is_in_use(self, template_id: UUID) -> bool:
        """True if any project type workflow edge references the template."""
        stmt = (
            select(ProjectTypeModel.id)
            .where(ProjectTypeModel.workflow.contains([{"ai_template_id": str(template_id)}]))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None
