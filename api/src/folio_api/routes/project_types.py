"""Project type and AI template configuration routes."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from folio_api.dependencies import DbSession
from folio_api.middleware.context import Auth
from folio_core.authorization import (
    AiTemplatePolicy,
    AuthorizationContext,
    ProjectTypePolicy,
    authorize,
)
from folio_core.models import DocumentSlot, ProjectType, WorkflowEdge
from folio_db.repositories import AiTemplateRepository, ProjectTypeRepository

router = APIRouter(tags=["Configuration"])


# ============================================================
# Request / Response Models
# ============================================================


class UpdateWorkflowRequest(BaseModel):
    """
    Replace a project type's workflow.

    ``document_schema`` is optional; when omitted the current schema is kept.
    """

    workflow: list[WorkflowEdge]
    document_schema: list[DocumentSlot] | None = None


class ProjectTypeResponse(BaseModel):
    id: UUID
    name: str
    document_schema: list[DocumentSlot]
    workflow: list[WorkflowEdge]


def _active_organization(auth: AuthorizationContext) -> UUID:
    authorize(auth.organization_id is not None, "Organization")
    return auth.organization_id


def _project_type_to_response(project_type: ProjectType) -> ProjectTypeResponse:
    return ProjectTypeResponse(
        id=project_type.id,
        name=project_type.name,
        document_schema=project_type.document_schema,
        workflow=project_type.workflow,
    )


# ============================================================
# Project types
# ============================================================


@router.put("/project-types/{project_type_id}/workflow", response_model=ProjectTypeResponse)
async def update_workflow(
    project_type_id: UUID,
    request: UpdateWorkflowRequest,
    auth: Auth,
    db: DbSession,
) -> ProjectTypeResponse:
    """
    Replace the workflow of a project type.

    Every edge must reference document types declared by the schema and an
    AI template of the same organization; otherwise the request fails with
    422 and nothing is saved.
    """
    organization_id = _active_organization(auth)
    repo = ProjectTypeRepository(db, organization_id)
    project_type = await repo.get_domain(project_type_id)
    authorize(
        project_type is not None and ProjectTypePolicy().can_update(auth, organization_id),
        "Project type",
    )

    templates = AiTemplateRepository(db, organization_id)
    for edge in request.workflow:
        if await templates.get_by_id(edge.ai_template_id) is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"AI template not found: {edge.ai_template_id}",
            )

    updated = project_type.model_copy(
        update={
            "workflow": request.workflow,
            "document_schema": (
                request.document_schema
                if request.document_schema is not None
                else project_type.document_schema
            ),
        }
    )
    await repo.save(updated)
    return _project_type_to_response(updated)


@router.delete("/project-types/{project_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project_type(
    project_type_id: UUID,
    auth: Auth,
    db: DbSession,
) -> None:
    """Delete a project type. Refused with 409 while projects use it."""
    organization_id = _active_organization(auth)
    repo = ProjectTypeRepository(db, organization_id)
    model = await repo.get_by_id(project_type_id)
    policy = ProjectTypePolicy()
    authorize(model is not None and policy.can_update(auth, organization_id), "Project type")

    project_count = await repo.project_count(project_type_id)
    if not policy.can_delete(auth, organization_id, project_count=project_count):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Project type is used by {project_count} project(s)",
        )
    await repo.delete(model)


# ============================================================
# AI templates
# ============================================================


@router.delete("/ai-templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ai_template(
    template_id: UUID,
    auth: Auth,
    db: DbSession,
) -> None:
    """Delete an AI template. Refused with 409 while a workflow edge references it."""
    organization_id = _active_organization(auth)
    repo = AiTemplateRepository(db, organization_id)
    model = await repo.get_by_id(template_id)
    policy = AiTemplatePolicy()
    authorize(model is not None and policy.can_update(auth, organization_id), "AI template")

    in_use = await repo.is_in_use(template_id)
    if not policy.can_delete(auth, organization_id, in_use=in_use):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="AI template is referenced by a project type workflow",
        )
    await repo.delete(model)
