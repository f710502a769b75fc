"""Project, project type and AI template SQLAlchemy models."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from folio_db.models.base import Base, MetadataMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from folio_db.models.document import DocumentModel
    from folio_db.models.tenant import ClientModel


class AiTemplateModel(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "ai_templates"

    organization_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    user_prompt: Mapped[str] = mapped_column(Text, nullable=False)


class ProjectTypeModel(Base, UUIDMixin, TimestampMixin):
    """
    Project type with its document schema and workflow graph.

    ``document_schema`` holds ``[{key, label, is_task}]`` and ``workflow``
    holds ``[{from_key, to_key, ai_template_id}]``.
    """

    __tablename__ = "project_types"

    organization_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(63), nullable=True)
    document_schema: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    workflow: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    lifecycle_steps: Mapped[list["LifecycleStepModel"]] = relationship(
        "LifecycleStepModel",
        back_populates="project_type",
        cascade="all, delete-orphan",
        order_by="LifecycleStepModel.order",
    )
    projects: Mapped[list["ProjectModel"]] = relationship(
        "ProjectModel", back_populates="project_type"
    )


class LifecycleStepModel(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "lifecycle_steps"

    project_type_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("project_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(31), default="slate", nullable=False)

    project_type: Mapped["ProjectTypeModel"] = relationship(
        "ProjectTypeModel", back_populates="lifecycle_steps"
    )


class ProjectModel(Base, UUIDMixin, TimestampMixin, MetadataMixin):
    """Project owned by a client. Its organization is the client's."""

    __tablename__ = "projects"

    client_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_type_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("project_types.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    current_lifecycle_step_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("lifecycle_steps.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    client: Mapped["ClientModel"] = relationship("ClientModel", back_populates="projects")
    project_type: Mapped["ProjectTypeModel | None"] = relationship(
        "ProjectTypeModel", back_populates="projects"
    )
    documents: Mapped[list["DocumentModel"]] = relationship(
        "DocumentModel", back_populates="project", cascade="all, delete-orphan"
    )
    tasks: Mapped[list["TaskModel"]] = relationship(
        "TaskModel", back_populates="project", cascade="all, delete-orphan"
    )


class TaskModel(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "tasks"

    project_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="SET NULL"),
        nullable=True,
    )
    assignee_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="todo", nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    project: Mapped["ProjectModel"] = relationship("ProjectModel", back_populates="tasks")

    __table_args__ = (Index("ix_tasks_project_status", "project_id", "status"),)
