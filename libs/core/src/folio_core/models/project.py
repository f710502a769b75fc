"""Project, project type and workflow domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from folio_core.errors import WorkflowIntegrityError
from folio_core.models.base import (
    BaseModel,
    IdentifiableMixin,
    MetadataMixin,
    OrganizationScopedMixin,
    TimestampMixin,
)


class DocumentSlot(BaseModel):
    """A document type declared by a project type's schema."""

    key: str = Field(..., min_length=1, max_length=63)
    label: str
    is_task: bool = False


class WorkflowEdge(BaseModel):
    """Generation step turning documents of ``from_key`` into ``to_key``."""

    from_key: str
    to_key: str
    ai_template_id: UUID


class LifecycleStep(IdentifiableMixin):
    """User-facing project status marker."""

    project_type_id: UUID | None = None
    order: int = 0
    label: str
    description: str | None = None
    color: str = "slate"


class AiTemplate(IdentifiableMixin, OrganizationScopedMixin, TimestampMixin):
    """Reusable system/user prompt pair referenced by workflow edges."""

    name: str = Field(..., min_length=1, max_length=255)
    system_prompt: str
    user_prompt: str


class ProjectType(IdentifiableMixin, OrganizationScopedMixin, TimestampMixin):
    """
    Declarative definition of a kind of project.

    The document schema lists the document "slots" a project of this type
    has. The workflow is a set of directed edges, each bound to an AI
    template, describing which generation step derives one document type
    from another.
    """

    name: str = Field(..., min_length=1, max_length=255)
    icon: str | None = None
    document_schema: list[DocumentSlot] = Field(default_factory=list)
    workflow: list[WorkflowEdge] = Field(default_factory=list)
    lifecycle_steps: list[LifecycleStep] = Field(default_factory=list)

    def documentation_keys(self) -> list[DocumentSlot]:
        return [slot for slot in self.document_schema if not slot.is_task]

    def task_keys(self) -> list[DocumentSlot]:
        return [slot for slot in self.document_schema if slot.is_task]

    def edge_from(self, document_type: str) -> WorkflowEdge | None:
        """Return the workflow edge consuming ``document_type``, if any."""
        for edge in self.workflow:
            if edge.from_key == document_type:
                return edge
        return None

    def validate_workflow(self) -> None:
        """
        Check that every workflow edge references keys of the document schema.

        Raises:
            WorkflowIntegrityError: listing every dangling key
        """
        keys = {slot.key for slot in self.document_schema}
        missing = sorted(
            {
                key
                for edge in self.workflow
                for key in (edge.from_key, edge.to_key)
                if key not in keys
            }
        )
        if missing:
            raise WorkflowIntegrityError(
                f"Workflow references unknown document types: {', '.join(missing)}",
                missing_keys=missing,
            )


class Project(IdentifiableMixin, TimestampMixin, MetadataMixin):
    """
    A unit of client work.

    A project's organization is never stored on the project itself; it is
    derived through its client.
    """

    client_id: UUID
    project_type_id: UUID | None = None
    current_lifecycle_step_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class Task(IdentifiableMixin, TimestampMixin):
    """Actionable item belonging to a project, optionally tied to a document."""

    project_id: UUID
    document_id: UUID | None = None
    assignee_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    status: str = "todo"
    priority: str = "medium"
    due_at: datetime | None = None
